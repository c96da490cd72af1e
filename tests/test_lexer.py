import pytest

from vshell.exceptions import ParseError
from vshell.lexer import TokenKind, tokenize


def values(line: str) -> list[str]:
    return [token.value for token in tokenize(line)]


def test_words_and_operators_split():
    assert values("echo hi | wc -w > out.txt") == ["echo", "hi", "|", "wc", "-w", ">", "out.txt"]


def test_two_char_operators_are_greedy():
    tokens = tokenize("a && b || c >> log; d &")
    ops = [t.value for t in tokens if t.kind is TokenKind.OPERATOR]
    assert ops == ["&&", "||", ">>", ";", "&"]


def test_operators_need_no_surrounding_space():
    assert values("echo a>f;echo b") == ["echo", "a", ">", "f", ";", "echo", "b"]


def test_quotes_are_literal_and_marked():
    tokens = tokenize("echo 'a | b' \"c > d\"")
    assert [t.value for t in tokens] == ["echo", "a | b", "c > d"]
    assert [t.quoted for t in tokens] == [False, True, True]
    assert all(t.kind is TokenKind.WORD for t in tokens)


def test_adjacent_quoted_and_unquoted_runs_concatenate():
    assert values('pre"mid dle"post') == ["premid dlepost"]


def test_empty_quotes_make_an_empty_word():
    assert values("echo ''") == ["echo", ""]


def test_comment_at_token_start():
    assert values("echo hi # ignored | wc") == ["echo", "hi"]


def test_hash_inside_word_is_literal():
    assert values("echo a#b") == ["echo", "a#b"]


def test_hash_after_operator_is_literal():
    assert values("echo a;#x") == ["echo", "a", ";", "#x"]
    assert values("#only") == []
    assert values("echo a #x") == ["echo", "a"]


def test_unterminated_quote_raises():
    with pytest.raises(ParseError):
        tokenize("echo 'oops")


def test_backslash_escapes_next_character():
    assert values(r"echo a\ b") == ["echo", "a b"]

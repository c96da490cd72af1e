import pytest

from vshell.exceptions import ParseError
from vshell.shell_parser import parse_line


def test_parse_empty_line_returns_no_items():
    assert len(parse_line("   ")) == 0


def test_parse_pipeline_segments_and_redirects():
    sequence = parse_line("cat < in.txt | grep x | sort >> out.txt")
    assert len(sequence) == 1
    pipeline = sequence.items[0].pipeline
    assert [seg.name for seg in pipeline.segments] == ["cat", "grep", "sort"]
    assert pipeline.segments[1].args == ["x"]
    assert pipeline.input_redirect == "in.txt"
    assert pipeline.output_redirect.path == "out.txt"
    assert pipeline.output_redirect.append is True


def test_parse_sequence_operators():
    sequence = parse_line("a && b || c ; d & e")
    assert [item.operator for item in sequence] == ["&&", "||", ";", "&", None]
    assert [item.pipeline.background for item in sequence] == [False, False, False, True, False]


def test_empty_pipelines_before_semicolon_are_skipped():
    sequence = parse_line("echo a ;; echo b;")
    assert [item.pipeline.segments[0].name for item in sequence] == ["echo", "echo"]


@pytest.mark.parametrize("line", ["&& echo", "echo a && && echo b", "echo a &&", "echo a ||", "& echo"])
def test_dangling_sequence_operator(line):
    with pytest.raises(ParseError):
        parse_line(line)


def test_parse_missing_redirection_target():
    with pytest.raises(ParseError):
        parse_line("echo hi >")


def test_parse_missing_command_before_pipe():
    with pytest.raises(ParseError):
        parse_line("echo hi |")
    with pytest.raises(ParseError):
        parse_line("| wc")


def test_parse_redirection_without_command():
    with pytest.raises(ParseError):
        parse_line("> out.txt")


def test_redirect_position_rules():
    with pytest.raises(ParseError):
        parse_line("echo hi > a | wc")
    with pytest.raises(ParseError):
        parse_line("echo hi | wc < a")
    with pytest.raises(ParseError):
        parse_line("echo hi > a > b")

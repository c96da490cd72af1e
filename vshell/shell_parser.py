"""Parser turning tokens into pipelines joined by sequence operators."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from .exceptions import ParseError
from .lexer import Token, TokenKind, tokenize

SEQUENCE_OPERATORS = frozenset({";", "&&", "||", "&"})
REDIRECT_OPERATORS = frozenset({"<", ">", ">>"})


@dataclass
class Segment:
    name: str
    args: list[str] = field(default_factory=list)


@dataclass
class OutputRedirect:
    path: str
    append: bool = False


@dataclass
class Pipeline:
    segments: list[Segment]
    input_redirect: str | None = None
    output_redirect: OutputRedirect | None = None
    background: bool = False
    job_id: int | None = None

    def describe(self) -> str:
        text = " | ".join(" ".join([seg.name, *seg.args]) for seg in self.segments)
        if self.input_redirect:
            text += f" < {self.input_redirect}"
        if self.output_redirect:
            op = ">>" if self.output_redirect.append else ">"
            text += f" {op} {self.output_redirect.path}"
        return text


@dataclass
class SequenceItem:
    pipeline: Pipeline
    operator: str | None = None


@dataclass
class CommandSequence:
    items: list[SequenceItem] = field(default_factory=list)

    def __iter__(self) -> Iterator[SequenceItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


def _unexpected(token: str | None) -> ParseError:
    return ParseError(f"syntax error near unexpected token '{token or 'newline'}'")


def parse_sequence(tokens: list[Token]) -> CommandSequence:
    sequence = CommandSequence()
    group: list[Token] = []
    previous_op: str | None = None
    for token in tokens:
        if token.is_operator and token.value in SEQUENCE_OPERATORS:
            op = token.value
            if not group:
                if op != ";":
                    raise _unexpected(op)
            else:
                pipeline = parse_pipeline_tokens(group)
                pipeline.background = op == "&"
                sequence.items.append(SequenceItem(pipeline, op))
            group = []
            previous_op = op
            continue
        group.append(token)
    if group:
        sequence.items.append(SequenceItem(parse_pipeline_tokens(group), None))
    elif previous_op in ("&&", "||"):
        raise _unexpected(None)
    return sequence


def parse_pipeline_tokens(tokens: list[Token]) -> Pipeline:
    stages: list[list[Token]] = [[]]
    for token in tokens:
        if token.is_operator and token.value == "|":
            if not stages[-1]:
                raise _unexpected("|")
            stages.append([])
        else:
            stages[-1].append(token)
    if not stages[-1]:
        raise _unexpected("|" if len(stages) > 1 else None)

    pipeline = Pipeline(segments=[])
    last = len(stages) - 1
    for index, stage in enumerate(stages):
        words: list[str] = []
        idx = 0
        while idx < len(stage):
            token = stage[idx]
            if token.kind is TokenKind.WORD:
                words.append(token.value)
                idx += 1
                continue
            if token.value not in REDIRECT_OPERATORS:
                raise _unexpected(token.value)
            target = stage[idx + 1] if idx + 1 < len(stage) else None
            if target is None or target.kind is not TokenKind.WORD:
                raise _unexpected(target.value if target else None)
            if token.value == "<":
                if index != 0:
                    raise ParseError("input redirection is only allowed on the first command")
                if pipeline.input_redirect is not None:
                    raise ParseError("duplicate input redirection")
                pipeline.input_redirect = target.value
            else:
                if index != last:
                    raise ParseError("output redirection is only allowed on the last command")
                if pipeline.output_redirect is not None:
                    raise ParseError("duplicate output redirection")
                pipeline.output_redirect = OutputRedirect(target.value, append=token.value == ">>")
            idx += 2
        if not words:
            raise ParseError("missing command name")
        pipeline.segments.append(Segment(name=words[0], args=words[1:]))
    return pipeline


def parse_line(line: str) -> CommandSequence:
    return parse_sequence(tokenize(line))


__all__ = [
    "Segment",
    "OutputRedirect",
    "Pipeline",
    "SequenceItem",
    "CommandSequence",
    "parse_sequence",
    "parse_pipeline_tokens",
    "parse_line",
]

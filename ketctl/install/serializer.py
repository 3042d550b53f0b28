"""Reading and writing plan files.

PyYAML drops comments, so documentation is added to the dumped text
afterwards. The dotted path of each key is inferred from its indentation,
which only works because ``KetDumper`` pins the layout: block style, two
spaces per level and sequences indented under their parent key.
"""
import logging
import re
from typing import Mapping, Sequence, TextIO, Union

import yaml
from pydantic import ValidationError as PydanticValidationError

from ..errors import ParseError, PlanWriteError
from .comments import COMMENTS
from .defaults import apply_defaults
from .migrate import migrate
from .plan import Plan, ScalarText

logger = logging.getLogger("ketctl.serializer")

INDENT = 2

_KEY_RE = re.compile(r"^(?P<indent> *)(?P<item>- )?(?P<key>[A-Za-z0-9_.\-]+) *:(?: |$)")


class KetDumper(yaml.SafeDumper):
    """Safe dumper that indents sequence items under their parent key."""

    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)


class PlanLoader(yaml.SafeLoader):
    """Safe loader that keeps the text of plain scalars it resolves to non-strings."""


def _keep_text(construct):
    def constructor(loader, node):
        return ScalarText(node.value, construct(loader, node))
    return constructor


for _tag, _construct in (
    ("tag:yaml.org,2002:bool", yaml.SafeLoader.construct_yaml_bool),
    ("tag:yaml.org,2002:int", yaml.SafeLoader.construct_yaml_int),
    ("tag:yaml.org,2002:float", yaml.SafeLoader.construct_yaml_float),
    ("tag:yaml.org,2002:timestamp", yaml.SafeLoader.construct_yaml_timestamp),
):
    PlanLoader.add_constructor(_tag, _keep_text(_construct))


def read_plan(data: Union[bytes, str]) -> Plan:
    """Parse a plan document, migrate deprecated fields and apply defaults.

    Raises:
        ParseError: If the document is not YAML or does not map to a plan
    """
    try:
        document = yaml.load(data, Loader=PlanLoader)
    except yaml.YAMLError as e:
        raise ParseError(f"failed to unmarshal plan: {e}") from e

    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise ParseError(
            f"failed to unmarshal plan: expected a mapping at the document root, "
            f"got {type(document).__name__}"
        )

    try:
        plan = Plan.from_document(document)
    except PydanticValidationError as e:
        raise ParseError(f"failed to unmarshal plan: {e}") from e

    return apply_defaults(migrate(plan))


def dump_plan(plan: Plan) -> str:
    """Return the annotated YAML text of ``plan``."""
    try:
        raw = yaml.dump(
            plan.to_document(),
            Dumper=KetDumper,
            default_flow_style=False,
            sort_keys=False,
            indent=INDENT,
            width=float("inf"),
            allow_unicode=True,
        )
    except yaml.YAMLError as e:
        raise PlanWriteError(f"error marshalling plan to yaml: {e}") from e
    return annotate(raw)


def write_plan(plan: Plan, dest: TextIO) -> None:
    """Write the annotated YAML of ``plan`` to a text stream."""
    text = dump_plan(plan)
    try:
        dest.write(text)
    except OSError as e:
        raise PlanWriteError(f"error writing plan: {e}") from e


def _commented(line: str, comment: Sequence[str], blank_line: bool) -> list:
    out = [""] if blank_line else []
    pad = " " * (len(line) - len(line.lstrip(" ")))
    out.extend(f"{pad}# {c}" for c in comment)
    out.append(line)
    return out


def annotate(text: str, comments: Mapping[str, Sequence[str]] = COMMENTS) -> str:
    """Insert documentation comments and section breaks into dumped YAML.

    Data lines are copied unchanged, except ``labels: {}`` inside the top-level
    etcd block, which is dropped. Each documented path is commented once per
    call, at its first occurrence.
    """
    pending = dict(comments)
    # (level, key) pairs from the document root to the current key
    stack = []
    out = []
    prev_level = -1
    blank_before_comment = True
    in_etcd = False

    for line in text.splitlines():
        match = _KEY_RE.match(line)
        if match is None:
            out.append(line)
            blank_before_comment = True
            continue

        key = match.group("key")
        column = len(match.group("indent")) + (INDENT if match.group("item") else 0)
        level = column // INDENT

        if level == 0:
            in_etcd = line == "etcd:"
        if in_etcd and key == "labels" and line.rstrip().endswith("labels: {}"):
            continue

        # leaving a nested block
        if level < prev_level:
            out.append("")
            blank_before_comment = False

        while stack and stack[-1][0] >= level:
            stack.pop()
        stack.append((level, key))
        prev_level = level

        comment = pending.pop(".".join(k for _, k in stack), None)
        if comment is not None:
            out.extend(_commented(line, comment, blank_before_comment and bool(out)))
        else:
            out.append(line)
        blank_before_comment = True

    return "\n".join(out) + "\n"

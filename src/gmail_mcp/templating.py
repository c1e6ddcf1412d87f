"""
File-based email templates.

A template is a plain text file <name>.txt in the template directory. An
optional "Subject: ..." line carries the subject; everything else is the
body. Placeholders use double braces, e.g. "Hi {{name}}".
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional, Union

from jinja2 import ChainableUndefined, Environment, TemplateError

from .errors import InvalidTemplateName, TemplateNotFound, TemplateRenderError

logger = logging.getLogger(__name__)

TEMPLATE_EXTENSION = ".txt"
DEFAULT_SUBJECT = "No Subject"

_TEMPLATE_NAME = re.compile(r"^[A-Za-z0-9_-]+$")
_SUBJECT_LINE = re.compile(r"^Subject:[ \t]*(.*)$", re.MULTILINE)
_LINE_BREAKS = re.compile(r"[\r\n]+")

VariableValue = Union[str, int, float, bool]
VariableMap = Mapping[str, VariableValue]


@dataclass(frozen=True)
class ParsedTemplate:
    subject_line: Optional[str]
    body: str


@dataclass(frozen=True)
class ComposedMessage:
    to: str
    subject: str
    body: str
    is_html: bool = False


class TemplateStore:
    """Read-only view of the template directory"""

    def __init__(self, template_dir: Path):
        self.template_dir = Path(template_dir)

    @property
    def exists(self) -> bool:
        return self.template_dir.is_dir()

    @staticmethod
    def is_valid_name(name: str) -> bool:
        return isinstance(name, str) and bool(_TEMPLATE_NAME.match(name))

    def resolve(self, name: str) -> Path:
        """
        Map a template name to its file.

        The name is checked before any filesystem access, so names such as
        "../secret" are rejected without looking outside the directory.

        Raises:
            InvalidTemplateName: name is not a plain identifier
            TemplateNotFound: no <name>.txt in the template directory
        """
        if not self.is_valid_name(name):
            raise InvalidTemplateName(name)

        path = self.template_dir / f"{name}{TEMPLATE_EXTENSION}"
        if path.resolve().parent != self.template_dir.resolve():
            raise InvalidTemplateName(name)
        if not path.is_file():
            raise TemplateNotFound(name)
        return path

    def read(self, name: str) -> str:
        path = self.resolve(name)
        logger.debug(f"Reading template {name} from {path}")
        return path.read_text(encoding="utf-8")

    def list(self) -> List[str]:
        """Sorted names of all templates currently in the directory"""
        if not self.exists:
            return []
        root = self.template_dir.resolve()
        names = (
            p.stem for p in self.template_dir.iterdir()
            if p.suffix == TEMPLATE_EXTENSION and p.is_file() and p.resolve().parent == root
        )
        return sorted(name for name in names if self.is_valid_name(name))


def parse_template(raw: str) -> ParsedTemplate:
    """
    Split the first "Subject:" line from the template body.

    The subject line may appear anywhere in the text; only the first one is
    taken, later ones stay in the body as written. Without a subject line the
    body is returned untouched.
    """
    match = _SUBJECT_LINE.search(raw)
    if match is None:
        return ParsedTemplate(subject_line=None, body=raw)

    body = raw[:match.start()] + raw[match.end():]
    return ParsedTemplate(subject_line=match.group(1).strip(), body=body.strip())


def _stringify(value: VariableValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class TemplateRenderer:
    """
    Double-brace placeholder substitution backed by Jinja2.

    Names missing from the variables render as an empty string. HTML
    escaping of substituted values is applied only to HTML messages.
    """

    def __init__(self):
        self._environments = {
            is_html: Environment(
                undefined=ChainableUndefined,
                autoescape=is_html,
                keep_trailing_newline=True,
            )
            for is_html in (False, True)
        }

    def render(self, text: str, variables: Optional[VariableMap] = None, is_html: bool = False) -> str:
        context = {key: _stringify(value) for key, value in (variables or {}).items()}
        try:
            template = self._environments[is_html].from_string(text)
            return template.render(context)
        except TemplateError as e:
            raise TemplateRenderError(f"Failed to render template: {e}")


def compose_message(
    to: str,
    parsed: ParsedTemplate,
    variables: Optional[VariableMap] = None,
    fallback_subject: Optional[str] = None,
    is_html: bool = False,
    renderer: Optional[TemplateRenderer] = None,
) -> ComposedMessage:
    """
    Render a parsed template into a message ready for delivery.

    Subject precedence: rendered template subject, then fallback_subject,
    then "No Subject". An empty candidate falls through to the next one.
    Line breaks in the subject become spaces.
    The recipient is passed through as given.
    """
    renderer = renderer or TemplateRenderer()

    subject = ""
    if parsed.subject_line:
        # subjects are single header lines, never escaped
        subject = _LINE_BREAKS.sub(" ", renderer.render(parsed.subject_line, variables)).strip()
    if not subject and fallback_subject and fallback_subject.strip():
        subject = _LINE_BREAKS.sub(" ", fallback_subject).strip()
    if not subject:
        subject = DEFAULT_SUBJECT

    body = renderer.render(parsed.body, variables, is_html=is_html)
    return ComposedMessage(to=to, subject=subject, body=body, is_html=is_html)

"""Rendering of notification email subjects, recipients and bodies."""

from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, select_autoescape

from commerce.core.config import EMAIL_TEMPLATES_DIR

_string_env = Environment(autoescape=False)  # nosec B701: subjects and addresses are plain text


def _file_env(template_dir: Path) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml"]),
    )


def render_string(source: str, variables: Dict[str, Any]) -> str:
    """Render a one-line template such as an email subject."""
    return _string_env.from_string(source).render(**variables).strip()


def render_body(
    template_path: str,
    variables: Dict[str, Any],
    template_dir: Path = EMAIL_TEMPLATES_DIR,
) -> str:
    """Render the HTML body ``template_path`` found under ``template_dir``.

    Raises ``jinja2.TemplateNotFound`` when the file does not exist.
    """
    return _file_env(template_dir).get_template(template_path).render(**variables)

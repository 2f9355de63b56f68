"""
Jinja2 template renderer for mails.

This module provides the MailRenderer class for rendering mail bodies,
subjects and attachments from the templates directory.
"""

import threading
from pathlib import Path
from typing import Any, Dict, Optional
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from mail_dispatch.templates import (
    MANIFEST_NAME,
    MailTemplate,
    TemplateManifestError,
    load_mail_templates
)


class RendererError(Exception):
    """Base exception for renderer errors."""
    pass


class MailRenderer:
    """
    Mail template renderer using Jinja2.

    Templates are ``.jinja`` files in the templates directory. HTML
    templates (``*.html.jinja``) are autoescaped, text templates and
    template strings are not.

    Example:
        >>> renderer = MailRenderer()
        >>> html = renderer.render_file('welcome.html.jinja', {'user': 'Jane'})
        >>> text = renderer.render_file('welcome.txt.jinja', {'user': 'Jane'})
    """

    def __init__(self, templates_dir: Optional[str] = None):
        """
        Initialize mail renderer.

        Args:
            templates_dir: Path to templates directory (defaults to MAIL_TEMPLATES_DIR from settings)
        """
        if templates_dir is None:
            from settings import MAIL_TEMPLATES_DIR
            templates_dir = MAIL_TEMPLATES_DIR

        self.templates_dir = Path(templates_dir)

        self.jinja_env = Environment(
            loader=FileSystemLoader(self.templates_dir),
            autoescape=select_autoescape(
                enabled_extensions=('html.jinja', 'htm.jinja', 'html', 'xml'),
                default_for_string=False,
                default=False
            ),
            trim_blocks=True,
            lstrip_blocks=True
        )

        self._setup_filters()

        self._mail_templates: Optional[Dict[str, MailTemplate]] = None
        self._lock = threading.Lock()

    def _setup_filters(self):
        """Setup custom Jinja2 filters for mail templates."""
        def datetimeformat(value, format='%Y-%m-%d %H:%M'):
            """Format datetime object."""
            if value is None:
                return ''
            return value.strftime(format)

        self.jinja_env.filters['datetimeformat'] = datetimeformat

    def render_file(self, template_name: str, context: Dict[str, Any]) -> str:
        """
        Render a template file from the templates directory.

        Args:
            template_name: Template filename (e.g., 'welcome.html.jinja')
            context: Dictionary with variables to render in template

        Returns:
            str: Rendered template content

        Raises:
            RendererError: If template not found or rendering fails
        """
        try:
            template = self.jinja_env.get_template(template_name)
            return template.render(**context)
        except TemplateNotFound:
            raise RendererError(f"Template not found: {template_name}")
        except Exception as e:
            raise RendererError(f"Failed to render template '{template_name}': {e}") from e

    def render_string(self, template_string: str, context: Dict[str, Any]) -> str:
        """
        Render a template from a string (used for subjects and file names).

        Example:
            >>> renderer.render_string("Hello {{ name }}!", {'name': 'World'})
            'Hello World!'
        """
        try:
            return self.jinja_env.from_string(template_string).render(**context)
        except Exception as e:
            raise RendererError(f"Failed to render template string: {e}") from e

    def render_bytes(self, template_name: str, context: Dict[str, Any], encoding: str = 'utf-8') -> bytes:
        """Render a template file and encode the result (used for attachments)."""
        content = self.render_file(template_name, context)
        try:
            return content.encode(encoding)
        except LookupError as e:
            raise RendererError(f"Unknown encoding '{encoding}' for template '{template_name}'") from e

    def get_mail_template(self, key: str) -> Optional[MailTemplate]:
        """
        Get a mail template definition by key.

        Definitions are loaded from mail_templates.json on first access.

        Returns:
            MailTemplate or None if no template with this key exists

        Raises:
            RendererError: If the manifest is malformed
        """
        with self._lock:
            if self._mail_templates is None:
                try:
                    self._mail_templates = load_mail_templates(self.templates_dir / MANIFEST_NAME)
                except TemplateManifestError as e:
                    raise RendererError(str(e)) from e
            return self._mail_templates.get(key)

    def list_mail_templates(self) -> list[str]:
        """List the keys of all defined mail templates."""
        try:
            definitions = load_mail_templates(self.templates_dir / MANIFEST_NAME)
        except TemplateManifestError as e:
            raise RendererError(str(e)) from e
        return sorted(definitions)

    def list_file_templates(self) -> list[str]:
        """
        List all available template files in the templates directory.

        Returns:
            list[str]: List of template filenames
        """
        if not self.templates_dir.exists():
            return []

        return sorted(
            f.name
            for f in self.templates_dir.iterdir()
            if f.is_file() and f.suffix == '.jinja'
        )

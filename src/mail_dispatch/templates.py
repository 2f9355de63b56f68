"""
Mail template definitions.

A mail template bundles the subject, the text and HTML templates, extra
headers and generated attachments of a mail. Definitions are read from
``mail_templates.json`` in the templates directory::

    {
      "welcome": {
        "subject": "Welcome {{ user }}",
        "subject_de": "Willkommen {{ user }}",
        "text": "welcome.txt.jinja",
        "html": "welcome.html.jinja",
        "headers": {"X-Campaign": "welcome"},
        "attachments": [
          {"id": "invite-ics", "template": "invite.ics.jinja",
           "contentType": "text/calendar", "alternative": true}
        ]
      }
    }

``subject``, ``text`` and ``html`` can be overridden per language by adding
``<key>_<lang>`` entries.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

MANIFEST_NAME = 'mail_templates.json'

# Subject used when a template does not define one
DEFAULT_SUBJECT = '{{ subject }}'


def to_machine_string(value: Any) -> str:
    """Convert a config value to the string used in a mail header."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


class AttachmentTemplate(BaseModel):
    """An attachment generated from a template."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    template: str
    file_name: Optional[str] = Field(default=None, alias='fileName')
    content_type: Optional[str] = Field(default=None, alias='contentType')
    alternative: bool = False
    encoding: str = 'utf-8'
    headers: Dict[str, Any] = Field(default_factory=dict)

    def default_file_name(self) -> str:
        """Derive the file name from the id: 'report-pdf' -> 'report.pdf'."""
        idx = self.id.rfind('-')
        if idx < 0:
            return self.id
        return f"{self.id[:idx]}.{self.id[idx + 1:]}"


class MailTemplate(BaseModel):
    """Definition of a templated mail."""

    # Language variants (subject_de, text_fr, ...) are kept as extra fields
    model_config = ConfigDict(extra='allow')

    subject: Optional[str] = None
    text: str
    html: Optional[str] = None
    headers: Dict[str, Any] = Field(default_factory=dict)
    attachments: List[AttachmentTemplate] = Field(default_factory=list)

    def localized(self, key: str, lang: Optional[str] = None) -> Optional[str]:
        """
        Look up ``<key>_<lang>`` and fall back to ``<key>``.

        Example:
            >>> template.localized('subject', 'de')
            'Willkommen {{ user }}'
        """
        if lang:
            value = (self.model_extra or {}).get(f"{key}_{lang}")
            if value:
                return value
        return getattr(self, key, None)

    def subject_template(self, lang: Optional[str] = None) -> str:
        return self.localized('subject', lang) or DEFAULT_SUBJECT

    def machine_headers(self) -> Dict[str, str]:
        return {name: to_machine_string(value) for name, value in self.headers.items()}


_MANIFEST_ADAPTER = TypeAdapter(Dict[str, MailTemplate])


class TemplateManifestError(ValueError):
    """Raised when mail_templates.json cannot be parsed."""
    pass


def load_mail_templates(path: Path) -> Dict[str, MailTemplate]:
    """
    Load mail template definitions from a JSON manifest.

    Args:
        path: Path to mail_templates.json

    Returns:
        dict: Template key -> MailTemplate (empty if the file does not exist)

    Raises:
        TemplateManifestError: If the manifest is malformed
    """
    if not path.exists():
        return {}

    try:
        return _MANIFEST_ADAPTER.validate_json(path.read_bytes())
    except ValidationError as e:
        raise TemplateManifestError(f"Invalid mail template manifest {path}: {e}") from e

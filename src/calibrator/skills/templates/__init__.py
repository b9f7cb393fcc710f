"""Bundled skill templates.

The default template is used when neither a plugin root nor a template
override is configured.

Templates are Jinja2 source: wrap literal ``{%`` or ``{#`` text in
``{% raw %}...{% endraw %}``.
"""

from pathlib import Path

TEMPLATES_DIR = Path(__file__).parent

DEFAULT_TEMPLATE_PATH = TEMPLATES_DIR / "skill-template.md"

"""
Digest email rendering.

Templates live in quotedigest/templates as <name>.html and <name>.txt.
"""

from typing import Any, Dict, Tuple

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape


class DigestRenderer:
    def __init__(self, env: Environment = None):
        self.env = env or Environment(
            loader=PackageLoader("quotedigest", "templates"),
            autoescape=select_autoescape(["html"]),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template: str, context: Dict[str, Any]) -> Tuple[str, str]:
        """
        Render the HTML and plain-text bodies of a template.

        Returns:
            (html, text)
        """
        html = self.env.get_template(f"{template}.html").render(**context)
        text = self.env.get_template(f"{template}.txt").render(**context)
        return html, text

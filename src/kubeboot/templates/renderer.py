from pathlib import Path
from typing import Any, Optional

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined

TEMPLATES_DIR = Path(__file__).resolve().parent


class TemplateRenderer:
    """Renders the manifests and scripts shipped with kubeboot."""

    def __init__(self, templates_dir: Optional[Path] = None):
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir or TEMPLATES_DIR)),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self.env.filters["to_yaml"] = _to_yaml

    def render(self, template_name: str, **context: Any) -> str:
        tmpl = self.env.get_template(template_name)
        return tmpl.render(**context)


def _to_yaml(value: Any, indent: int = 0) -> str:
    text = yaml.safe_dump(value, sort_keys=False, default_flow_style=False).rstrip("\n")
    pad = " " * indent
    return "\n".join(pad + line if i else line for i, line in enumerate(text.splitlines()))

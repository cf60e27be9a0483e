"""Prompt templates shipped in site_report/prompts/.

A prompt is a YAML file with a `content` key (plus name/version for humans),
or a plain Markdown file. PROMPTS_DIR can point at an edited copy.
"""

import yaml
from pathlib import Path
from typing import Optional
from ..config import get_settings

def load_prompt(name: str, prompts_dir: Optional[str] = None) -> str:
    base = Path(prompts_dir or get_settings().PROMPTS_DIR)

    yaml_path = base / f"{name}.yaml"
    if yaml_path.exists():
        data = yaml.safe_load(yaml_path.read_text(encoding="utf-8")) or {}
        content = data.get("content") if isinstance(data, dict) else None
        if not content:
            raise ValueError(f"Prompt file {yaml_path} has no 'content'")
        return content.strip()

    md_path = base / f"{name}.md"
    if md_path.exists():
        return md_path.read_text(encoding="utf-8").strip()

    raise FileNotFoundError(f"Prompt '{name}' not found in {base} (.yaml or .md)")

"""
Prompt Management Service.

Prompt templates live in YAML files (one per prompt) for easy management and
updates. Each file carries a `prompt` key whose text may contain the
`{question}` and `{correct_answer}` placeholders.
"""
import logging
import os
import re
from typing import Any, Dict

import yaml

from examhub.errors import AppError

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class PromptLibrary:
    """Loads prompt templates from a directory and caches them per instance."""

    def __init__(self, prompts_dir: str):
        self.prompts_dir = prompts_dir
        self._cache: Dict[str, Dict[str, Any]] = {}

    def _load(self, name: str) -> Dict[str, Any]:
        if name in self._cache:
            return self._cache[name]

        file_path = os.path.join(self.prompts_dir, f"{name}.yaml")
        if not os.path.exists(file_path):
            raise AppError.internal(f"Prompt file not found: {name}", file_path)

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise AppError.internal(f"Error loading prompt {name}", str(exc)) from exc

        if not isinstance(data, dict) or not isinstance(data.get("prompt"), str):
            raise AppError.internal(f"Prompt {name} has no 'prompt' text", file_path)

        self._cache[name] = data
        return data

    def render(self, name: str, **variables: str) -> str:
        """
        Fill a template's placeholders.

        Substitution is a single pass over the template, so placeholder-like
        text inside a value is left as is. Unknown placeholders and the JSON
        examples in the templates are not touched.
        """
        template = self._load(name)["prompt"]

        def substitute(match):
            value = variables.get(match.group(1))
            return match.group(0) if value is None else value.strip()

        return _PLACEHOLDER.sub(substitute, template)

    def clear_cache(self) -> None:
        """Clear the prompt cache (useful after updating YAML files)."""
        self._cache.clear()

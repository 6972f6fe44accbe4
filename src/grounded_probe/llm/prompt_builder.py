"""
Prompt selection and search instruction rendering.

Responsible for:
- Loading the prompt catalog (one prompt per line) and picking one uniformly
- Rendering the priority-search prompts and system instructions (Jinja2)
"""

import random
from pathlib import Path
from typing import Optional

import structlog
from jinja2 import Environment, FileSystemLoader, StrictUndefined


logger = structlog.get_logger(__name__)

DEFAULT_PROMPTS_DIR = Path(__file__).parent / "prompts"
CATALOG_FILENAME = "catalog.txt"


class PromptCatalog:
    """Static list of probe prompts with uniform random selection."""

    def __init__(self, prompts: list[str], rng: Optional[random.Random] = None):
        cleaned = [p.strip() for p in prompts if p and p.strip()]
        if not cleaned:
            raise ValueError("Prompt catalog must contain at least one prompt")
        self.prompts = cleaned
        self._rng = rng or random.Random()

    @classmethod
    def from_file(cls, path: Path | str | None = None, rng: Optional[random.Random] = None) -> "PromptCatalog":
        """
        Load prompts from a text file, one per line.

        Blank lines and lines starting with '#' are ignored. Defaults to the
        packaged catalog.
        """
        catalog_path = Path(path) if path else DEFAULT_PROMPTS_DIR / CATALOG_FILENAME
        with open(catalog_path, "r", encoding="utf-8") as f:
            lines = [line for line in f.read().splitlines() if not line.lstrip().startswith("#")]
        catalog = cls(lines, rng=rng)
        logger.info("Loaded prompt catalog", path=str(catalog_path), count=len(catalog))
        return catalog

    def choose(self) -> str:
        return self._rng.choice(self.prompts)

    def __len__(self) -> int:
        return len(self.prompts)


class SearchPromptBuilder:
    """
    Render priority-search prompts from Jinja2 templates.

    Templates (all receive ``domain``; the *_prompt ones also ``prompt``):
    - domain_prompt.txt / domain_instruction.txt: phase 1, site-focused search
    - general_prompt.txt / general_instruction.txt: phase 2 and fallback
    """

    def __init__(self, domain: str, templates_dir: Path | str | None = None):
        """
        Initialize prompt builder.

        Args:
            domain: Site to prioritize (e.g., "quadrate.lk")
            templates_dir: Directory containing the templates (defaults to packaged prompts)
        """
        if not domain:
            raise ValueError("Priority search requires a domain")
        self.domain = domain
        self.templates_dir = Path(templates_dir) if templates_dir else DEFAULT_PROMPTS_DIR

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
            autoescape=False  # We're generating prompts, not HTML
        )

        try:
            self.domain_prompt_template = self.jinja_env.get_template("domain_prompt.txt")
            self.domain_instruction_template = self.jinja_env.get_template("domain_instruction.txt")
            self.general_prompt_template = self.jinja_env.get_template("general_prompt.txt")
            self.general_instruction_template = self.jinja_env.get_template("general_instruction.txt")
            logger.info("Loaded search templates", templates_dir=str(self.templates_dir), domain=domain)
        except Exception as e:
            logger.error("Failed to load search templates", error=str(e))
            raise

    def domain_prompt(self, prompt: str) -> str:
        return self.domain_prompt_template.render(domain=self.domain, prompt=prompt).strip()

    def domain_instruction(self) -> str:
        return self.domain_instruction_template.render(domain=self.domain).strip()

    def general_prompt(self, prompt: str) -> str:
        return self.general_prompt_template.render(domain=self.domain, prompt=prompt).strip()

    def general_instruction(self) -> str:
        return self.general_instruction_template.render(domain=self.domain).strip()

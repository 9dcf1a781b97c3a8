"""Idempotent workspace initialization with template files.

Run directly: python -m src.infra.init_workspace [workspace_dir]
"""

from __future__ import annotations

import sys
from pathlib import Path

import structlog

from src.habits.models import HabitBook
from src.infra.logging import setup_logging
from src.session.models import UserProfile

logger = structlog.get_logger()

WORKSPACE_DIR = Path("workspace")

TEMPLATES: dict[str, str] = {
    "PERSONA.md": """\
# Mentor persona
You are a personal mentor: honest, strategic and supportive.

## How you mentor
- Listen first. Reflect back what you heard before advising.
- Ask one sharp follow-up question when something is unclear.
- Challenge assumptions, but stay on the mentee's side.
- Close with one or two concrete next steps.
""",
    "profile.json": UserProfile().model_dump_json(indent=2) + "\n",
    "tasks.json": "[]\n",
    "habits.json": HabitBook().model_dump_json(indent=2) + "\n",
}


def init_workspace(workspace_dir: Path = WORKSPACE_DIR) -> list[Path]:
    """Create workspace directory and template files.

    Idempotent: existing files are not overwritten. Returns the files created.
    """
    workspace_dir.mkdir(parents=True, exist_ok=True)
    logger.info("workspace_dir_ensured", workspace=str(workspace_dir))

    created: list[Path] = []
    for filename, content in TEMPLATES.items():
        filepath = workspace_dir / filename
        if filepath.exists():
            logger.info("workspace_file_skipped", file=str(filepath))
        else:
            filepath.write_text(content, encoding="utf-8")
            logger.info("workspace_template_created", file=str(filepath))
            created.append(filepath)
    return created


if __name__ == "__main__":
    setup_logging(json_output=False)
    init_workspace(Path(sys.argv[1]) if len(sys.argv) > 1 else WORKSPACE_DIR)

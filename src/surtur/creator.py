"""
Project scaffolding for `surtur new` and `surtur init`.

A new project looks like this:

    hello/
    ├── project.ini
    ├── .gitignore
    ├── build/
    └── src/
        └── main.c          # prints "Hello, World!"

Library projects get src/lib.c and include/<name>.h instead of main.c.
"""

import logging
import re
import shutil
import subprocess
from pathlib import Path

from .config.project_config import DESCRIPTOR_NAME, ProjectConfig

logger = logging.getLogger(__name__)

MAIN_TEMPLATE = """#include <stdio.h>

int main(void) {
    printf("Hello, World!\\n");
    return 0;
}
"""

LIB_SOURCE_TEMPLATE = """#include "{name}.h"

int {prefix}_add(int a, int b) {{
    return a + b;
}}
"""

LIB_HEADER_TEMPLATE = """#ifndef {guard}
#define {guard}

int {prefix}_add(int a, int b);

#endif /* {guard} */
"""

GITIGNORE_TEMPLATE = """build/
.surtur/
"""


class ProjectCreateError(Exception):
    """Raised when a project cannot be scaffolded."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Cannot create project at {path}: {reason}")
        self.path = path
        self.reason = reason


class ProjectExistsError(ProjectCreateError):
    """Raised when the target already holds a project."""

    def __init__(self, path: Path):
        super().__init__(path, "a project already exists there")


def c_identifier(name: str) -> str:
    """Turn a project name into a valid C identifier prefix."""
    ident = re.sub(r"\W", "_", name)
    if ident[:1].isdigit():
        ident = f"_{ident}"
    return ident


class ProjectCreator:
    """Creates project directories from the built-in templates."""

    def __init__(self, git: str = "git"):
        self.git = git

    def create(self, parent_dir: Path, name: str, lib: bool = False) -> Path:
        """
        Create a new project directory named `name` under parent_dir.

        Args:
            parent_dir: Directory that will contain the project
            name: Project name (also the directory name)
            lib: Scaffold a library instead of an executable

        Returns:
            Path to the new project root

        Raises:
            ProjectExistsError: If the directory already exists
            ProjectCreateError: If the name is invalid or files cannot be written
        """
        root = Path(parent_dir) / name
        if root.exists():
            raise ProjectExistsError(root)

        config = self._make_config(root, name)
        try:
            root.mkdir(parents=True)
        except OSError as e:
            raise ProjectCreateError(root, str(e)) from e

        self._scaffold(root, config, lib)
        return root

    def init(self, project_dir: Path, lib: bool = False) -> Path:
        """
        Turn an existing directory into a project.

        The project is named after the directory. Existing sources are
        kept; templates are only written where nothing exists yet.

        Raises:
            ProjectExistsError: If project.ini already exists
            ProjectCreateError: If the name is invalid or files cannot be written
        """
        root = Path(project_dir).resolve()
        if (root / DESCRIPTOR_NAME).exists():
            raise ProjectExistsError(root)

        config = self._make_config(root, root.name)
        self._scaffold(root, config, lib)
        return root

    @staticmethod
    def _make_config(root: Path, name: str) -> ProjectConfig:
        try:
            return ProjectConfig(name=name)
        except ValueError as e:
            raise ProjectCreateError(root, str(e)) from e

    def _scaffold(self, root: Path, config: ProjectConfig, lib: bool) -> None:
        prefix = c_identifier(config.name)
        try:
            (root / "src").mkdir(exist_ok=True)
            (root / "build").mkdir(exist_ok=True)

            if lib:
                (root / "include").mkdir(exist_ok=True)
                self._write_new(
                    root / "src" / "lib.c",
                    LIB_SOURCE_TEMPLATE.format(name=config.name, prefix=prefix),
                )
                self._write_new(
                    root / "include" / f"{config.name}.h",
                    LIB_HEADER_TEMPLATE.format(guard=f"{prefix.upper()}_H", prefix=prefix),
                )
            elif not any((root / "src").glob("*.c")):
                self._write_new(root / "src" / "main.c", MAIN_TEMPLATE)

            self._write_new(root / ".gitignore", GITIGNORE_TEMPLATE)
            config.save(root / DESCRIPTOR_NAME)
        except OSError as e:
            raise ProjectCreateError(root, str(e)) from e

        self._git_init(root)
        logger.info("Created project '%s' at %s", config.name, root)

    @staticmethod
    def _write_new(path: Path, content: str) -> None:
        if not path.exists():
            path.write_text(content, encoding="utf-8")

    def _git_init(self, root: Path) -> bool:
        """Initialize a git repository; skipped when git is unavailable."""
        if (root / ".git").exists():
            return False
        if shutil.which(self.git) is None:
            logger.debug("git not found, skipping repository initialization")
            return False

        result = subprocess.run(
            [self.git, "init", "--quiet"],
            cwd=root,
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            logger.warning("git init failed in %s: %s", root, result.stderr.strip())
            return False
        return True

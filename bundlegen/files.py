"""Project directory and entry-point discovery."""

from pathlib import Path

from bundlegen.errors import NotFoundError, PlanningError
from bundlegen.utils.constants import (
    CODE_FILE_EXTENSIONS,
    CONFIG_ENTRY_POINT,
    OPERATIONS_DIR_NAME,
    PROJECT_DIR_NAME,
    WEBHOOKS_DIR_NAME,
)


def directory_exists(path: str | Path) -> bool:
    """True if ``path`` exists and is a directory."""
    return Path(path).is_dir()


def code_file_path(directory: str | Path, name: str) -> Path:
    """Resolve a code entry point inside ``directory``.

    ``name`` is tried as given first, then with each other recognised
    extension, so ``app.config.ts`` also finds ``app.config.js``.

    Raises:
        NotFoundError: no variant of the file exists
    """
    path = _find_code_file(Path(directory), name)
    if path is None:
        raise NotFoundError(str(Path(directory) / name))
    return path


def _find_code_file(base: Path, name: str) -> Path | None:
    stem, suffix = _split_code_suffix(name)
    candidates = [name] + [stem + ext for ext in CODE_FILE_EXTENSIONS if ext != suffix]
    for candidate in candidates:
        path = base / candidate
        if path.is_file():
            return path
    return None


def _split_code_suffix(name: str) -> tuple[str, str]:
    for ext in CODE_FILE_EXTENSIONS:
        if name.endswith(ext):
            return name[: -len(ext)], ext
    return name, ""


def _is_code_file(path: Path) -> bool:
    if path.name.endswith(".d.ts"):
        return False
    return path.suffix in CODE_FILE_EXTENSIONS


def discover_paths(directory: str | Path, relative_to: str | Path, recursive: bool = False) -> list[str]:
    """List code files under ``directory`` as POSIX paths relative to ``relative_to``.

    Type declaration files (``*.d.ts``) are skipped. The result is sorted so
    bundler invocations are reproducible.
    """
    base = Path(directory)
    if not base.is_dir():
        raise NotFoundError(str(base), what="directory")

    pattern = "**/*" if recursive else "*"
    root = Path(relative_to)
    found = []
    try:
        for path in base.glob(pattern):
            if path.is_file() and _is_code_file(path):
                found.append(path.relative_to(root).as_posix())
    except OSError as e:
        raise PlanningError(f"could not list {base}: {e}") from e
    return sorted(found)


def get_webhooks(project_dir: str | Path, dir_name: str = WEBHOOKS_DIR_NAME) -> list[str]:
    """Webhook entry points: code files directly inside the webhooks directory."""
    return discover_paths(Path(project_dir) / dir_name, project_dir, recursive=False)


def get_operation_paths(project_dir: str | Path, dir_name: str = OPERATIONS_DIR_NAME) -> list[str]:
    """Operation entry points: code files anywhere under the operations directory."""
    return discover_paths(Path(project_dir) / dir_name, project_dir, recursive=True)


def find_project_dir(directory: str | Path, config_entry_point: str = CONFIG_ENTRY_POINT) -> Path:
    """Locate the project directory holding the config entry point.

    ``directory`` itself wins when it contains the entry point, otherwise its
    ``.bundlegen`` subdirectory is used when present.

    Raises:
        NotFoundError: neither location exists
    """
    base = Path(directory).resolve()
    if not base.is_dir():
        raise NotFoundError(str(base), what="project directory")

    if _find_code_file(base, config_entry_point) is not None:
        return base

    nested = base / PROJECT_DIR_NAME
    if nested.is_dir():
        return nested
    raise NotFoundError(str(nested), what="project directory")

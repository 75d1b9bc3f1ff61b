"""Section-per-profile file I/O shared by the profile and credential stores.

Both ``~/.aws/config`` and ``~/.aws/credentials`` are INI-style files with
one ``[section]`` per profile.  Reads go through :mod:`configparser` with
interpolation disabled (secrets may contain ``%``) and key case preserved.
Writes always replace the whole file: the new content is written to a
temporary file beside the target and renamed over it, so a crash mid-write
never leaves a truncated store behind.
"""

from __future__ import annotations

import configparser
import contextlib
import logging
import os
import sys
import tempfile
from pathlib import Path

from aws_saml_login.errors import StoreIOError

logger = logging.getLogger(__name__)

# configparser treats its default section as inherited by every other
# section; AWS files have no such concept.
_NO_DEFAULTS = "\x00no-defaults"


def _new_parser() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(
        interpolation=None,
        default_section=_NO_DEFAULTS,
        strict=False,
    )
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    return parser


def read_sections(path: Path) -> dict[str, dict[str, str]]:
    """Read *path* into ``{section: {key: value}}``.

    A missing file is an empty store.  Any other failure raises
    :class:`StoreIOError`.
    """
    if not path.is_file():
        logger.debug("Store file %s does not exist; starting empty", path)
        return {}

    parser = _new_parser()
    try:
        with path.open("r", encoding="utf-8") as fh:
            parser.read_file(fh)
    except (OSError, UnicodeDecodeError) as exc:
        raise StoreIOError(f"Could not read {path}: {exc}", cause=exc) from exc
    except configparser.Error as exc:
        raise StoreIOError(f"Could not parse {path}: {exc}", cause=exc) from exc

    return {section: dict(parser.items(section)) for section in parser.sections()}


def write_sections(path: Path, sections: dict[str, dict[str, str]]) -> None:
    """Atomically replace *path* with *sections*, sorted by section name.

    The file is created with mode ``0600`` since it may hold secrets.
    """
    parser = _new_parser()
    for name in sorted(sections):
        parser.add_section(name)
        for key, value in sections[name].items():
            parser.set(name, key, value)

    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            parser.write(fh)
            fh.flush()
            os.fsync(fh.fileno())
        if sys.platform != "win32":
            os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        raise StoreIOError(f"Could not write {path}: {exc}", cause=exc) from exc
    finally:
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)

    logger.debug("Wrote %d section(s) to %s", len(sections), path)

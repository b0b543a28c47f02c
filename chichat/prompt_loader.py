from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional


def read_text_resource(path: Path) -> str:
    """Purpose: Read a bundled text resource as UTF-8, dropping a leading BOM.
    Inputs/Outputs: Input is a Path; output is the decoded text.
    Side Effects / State: None; reads the filesystem.
    Dependencies: Path.read_text/read_bytes; used for prompts and knowledge.
    Failure Modes: Missing files raise FileNotFoundError; undecodable bytes are
        dropped by the tolerant fallback decode.
    If Removed: Persona and knowledge blocks cannot be loaded.
    Testing Notes: Write a BOM-prefixed temp file and compare the result.
    """
    try:
        return path.read_text(encoding="utf-8").lstrip("\ufeff")
    except UnicodeDecodeError:
        raw = path.read_bytes()
        return raw.decode("utf-8", errors="ignore").lstrip("\ufeff")


def load_prompt(prompts_dir: Path, name: str, replacements: Optional[Mapping[str, str]] = None) -> str:
    """Load prompts_dir/name and substitute <<KEY>> placeholders."""
    text = read_text_resource(prompts_dir / name)
    for key, value in (replacements or {}).items():
        text = text.replace(f"<<{key}>>", value)
    return text

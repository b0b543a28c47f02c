from __future__ import annotations

"""Static business knowledge served into every directive payload."""

import threading
from pathlib import Path
from typing import Optional

from ..prompt_loader import read_text_resource

DEFAULT_KNOWLEDGE_PATH = Path(__file__).resolve().parent / "chi_knowledge.md"


class KnowledgeStore:
    """Load the reference markdown once and hand it out as a single block."""

    def __init__(self, knowledge_path: Optional[Path] = None) -> None:
        self._path = knowledge_path or DEFAULT_KNOWLEDGE_PATH
        self._text: Optional[str] = None
        self._lock = threading.Lock()

    def get_text(self) -> str:
        """Purpose: Return the full knowledge text, reading the file on first use.
        Inputs/Outputs: No inputs; returns the markdown body with surrounding newlines.
        Side Effects / State: Caches the text for the lifetime of the store.
        Dependencies: read_text_resource.
        Failure Modes: FileNotFoundError propagates; the app treats it as a server error.
        If Removed: The reference block disappears from every payload.
        Testing Notes: Point at a temp file and confirm a second call does not re-read.
        """
        with self._lock:
            if self._text is None:
                body = read_text_resource(self._path).strip("\n")
                self._text = f"\n{body}\n"
            return self._text

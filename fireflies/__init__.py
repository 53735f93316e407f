from __future__ import annotations

from pathlib import Path
from pkgutil import extend_path

__path__ = extend_path(__path__, __name__)

_SRC_PACKAGE = Path(__file__).resolve().parent.parent / "src" / "fireflies"
if _SRC_PACKAGE.is_dir():
    # Prefer the checkout over any installed copy that extend_path picked up.
    __path__ = [entry for entry in __path__ if entry != str(_SRC_PACKAGE)]
    __path__.insert(1, str(_SRC_PACKAGE))

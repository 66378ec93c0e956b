"""
Deterministic, content-addressed identifiers for engine commands.

Re-running an unchanged script must hand the engine the same object ids, so
an id is a hash of the script text, the calling range and every input that
affects the resulting geometry. The hashed document is serialized through
`canonical()`, which enumerates the fields of each supported type explicitly.
Bump ID_SCHEMA_VERSION whenever that layout changes.
"""

import hashlib
import json
import uuid
from typing import Any

from .values import Value, SketchGroup, ExtrudeGroup, Segment, ExtrudeSurface
from ..tokens import SourceRange


ID_SCHEMA_VERSION = 1


def canonical(obj: Any) -> Any:
    """
    Reduce `obj` to plain JSON data with a fixed layout.

    Numbers become floats so that `5` and `5.0` hash alike.

    Raises:
        TypeError: For any type without an explicit layout
    """
    if obj is None or isinstance(obj, (str, bool)):
        return obj
    if isinstance(obj, (int, float)):
        return float(obj)
    if isinstance(obj, (list, tuple)):
        return [canonical(item) for item in obj]
    if isinstance(obj, dict):
        out = {}
        for key, value in obj.items():
            if not isinstance(key, str):
                raise TypeError(f"cannot hash mapping key {key!r}")
            out[key] = canonical(value)
        return out
    if isinstance(obj, Value):
        return {"kind": obj.kind.value, "data": canonical(obj.data)}
    if isinstance(obj, Segment):
        return {"from": canonical(obj.from_), "to": canonical(obj.to), "name": obj.name}
    if isinstance(obj, SketchGroup):
        return {
            "id": obj.id,
            "start": canonical(obj.start),
            "segments": canonical(obj.segments),
            "position": canonical(obj.position),
            "rotation": canonical(obj.rotation),
        }
    if isinstance(obj, ExtrudeSurface):
        return {
            "name": obj.name,
            "position": canonical(obj.position),
            "rotation": canonical(obj.rotation),
        }
    if isinstance(obj, ExtrudeGroup):
        return {
            "id": obj.id,
            "height": canonical(obj.height),
            "position": canonical(obj.position),
            "rotation": canonical(obj.rotation),
            "surfaces": canonical(obj.surfaces),
        }
    raise TypeError(f"no canonical form for {type(obj).__name__}")


def command_id(code: str, source_range: SourceRange, semantic_inputs: Any) -> str:
    """
    Derive the engine id for a command issued from `source_range` of `code`.

    Returns:
        A UUID string (version bits set to 5) taken from a SHA-256 digest
    """
    document = {
        "v": ID_SCHEMA_VERSION,
        "code": code,
        "range": [source_range[0], source_range[1]],
        "inputs": canonical(semantic_inputs),
    }
    payload = json.dumps(document, sort_keys=True, separators=(",", ":"))
    digest = hashlib.sha256(payload.encode("utf-8")).digest()
    return str(uuid.UUID(bytes=digest[:16], version=5))


def compute_source_signature(source: str) -> str:
    """
    Compute a signature for source code.

    Uses SHA-256 hash of the normalized source.
    """
    # Normalize: strip whitespace, normalize line endings
    normalized = source.strip().replace('\r\n', '\n').replace('\r', '\n')
    return f"sha256:{hashlib.sha256(normalized.encode()).hexdigest()}"


def verify_source_signature(source: str, signature: str) -> bool:
    """True if `source` still matches a previously computed signature."""
    return compute_source_signature(source) == signature

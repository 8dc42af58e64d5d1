from __future__ import annotations

from typing import Dict, Optional, Sequence

from reflectscan.payload import Payload


def check_reflections(body: bytes, payloads: Sequence[Payload]) -> Dict[str, bool]:
    """Map each payload value to whether it occurs verbatim in body.

    Byte-exact and case-sensitive: no entity decoding or normalization, so a
    hit is a candidate for manual verification and nothing more.
    """
    return {p.value: p.value.encode("utf-8") in body for p in payloads}


def is_html_response(content_type: Optional[str]) -> bool:
    # a missing header is treated as renderable
    if not content_type:
        return True
    return "html" in content_type.lower()

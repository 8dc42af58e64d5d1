from __future__ import annotations

import enum
import hashlib
from dataclasses import dataclass
from typing import Dict, Iterable, List


class Variant(enum.Enum):
    """Quote-break shape carried by a payload value."""

    DOUBLE_QUOTE = '">'
    SINGLE_QUOTE = "'>"

    @property
    def delimiter(self) -> str:
        return self.value


@dataclass(frozen=True)
class Payload:
    parameter: str
    value: str
    variant: Variant


def marker_parts(parameter: str):
    digest = hashlib.md5(parameter.encode("utf-8")).hexdigest()
    return digest[:3], digest[-2:]


def generate_payloads(parameters: Iterable[str]) -> List[Payload]:
    """Two deterministic markers per parameter, double-quote variant first."""
    payloads: List[Payload] = []
    for param in parameters:
        prefix, suffix = marker_parts(param)
        for variant in Variant:
            payloads.append(Payload(parameter=param, value=prefix + variant.delimiter + suffix, variant=variant))
    return payloads


def split_by_variant(payloads: Iterable[Payload]) -> Dict[Variant, List[Payload]]:
    grouped: Dict[Variant, List[Payload]] = {v: [] for v in Variant}
    for p in payloads:
        grouped[p.variant].append(p)
    return grouped

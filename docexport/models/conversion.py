# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Succeeded:
    data: bytes
    mime_type: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failed:
    stage: str
    message: str
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return False


ConversionResult = Union[Succeeded, Failed]

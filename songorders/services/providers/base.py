from __future__ import annotations

from typing import Dict, List, Optional, Protocol


class TextProvider(Protocol):
    provider_name: str

    async def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout_ms: Optional[int] = None,
    ) -> str:
        ...

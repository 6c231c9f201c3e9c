# src/pagetree_kit/parsers/base.py

from abc import ABC, abstractmethod
from typing import Any

from .models import ParseResult


class DocumentParser(ABC):
    @abstractmethod
    def parse(self, source: Any) -> ParseResult:
        """
        Parse a page payload into an ordered list of nodes.

        Requirements:
        - Deterministic output for same input
        - Never raises for malformed input; failures come back in the result
        - No IDs generated
        """
        raise NotImplementedError

"""
Symbol resolution for report annotation.

Resolvers map a data address to the named object containing it and a program
counter to a readable function description. They are only consulted to label
report output and never influence which scopes share memory.
"""

import bisect
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..core.errors import SymbolDataError


@dataclass
class ObjectSymbol:
    """A named data object occupying ``[address, address + size)``."""
    name: str
    address: int
    size: int

    def contains(self, address: int) -> bool:
        return self.address <= address < self.address + max(self.size, 1)


@dataclass
class FunctionSymbol:
    """A function's code range and optional source location."""
    name: str
    start: int
    end: int
    file: Optional[str] = None
    line: Optional[int] = None

    def contains(self, pc: int) -> bool:
        return self.start <= pc < self.end


class AddressOnlyResolver:
    """Resolver used when no symbol data is available."""

    def resolve(self, address: int) -> Optional[Tuple[str, int]]:
        return None

    def describe(self, program_counter: int) -> str:
        return f"0x{program_counter:x}"


def parse_int(value: Any) -> int:
    """Accept integers or numeric strings such as ``"0x1000"``."""
    if isinstance(value, bool):
        raise ValueError(f"not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 0)
    raise ValueError(f"not an integer: {value!r}")


class SymbolTable:
    """
    Symbol data loaded from a JSON description of the traced image.

    The file holds two lists::

        {"objects":   [{"name": "struct proc", "address": "0x1000", "size": 64}],
         "functions": [{"name": "sys_fork", "start": "0x4000", "end": "0x4100",
                        "file": "proc.c", "line": 210}]}

    Lookups are binary searches over ranges sorted by start address.
    """

    def __init__(self, objects: List[ObjectSymbol], functions: List[FunctionSymbol]):
        self.objects = sorted(objects, key=lambda o: o.address)
        self.functions = sorted(functions, key=lambda f: f.start)
        self._object_starts = [o.address for o in self.objects]
        self._function_starts = [f.start for f in self.functions]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SymbolTable':
        try:
            objects = [
                ObjectSymbol(
                    name=str(entry['name']),
                    address=parse_int(entry['address']),
                    size=parse_int(entry.get('size', 0)),
                )
                for entry in data.get('objects', [])
            ]
            functions = [
                FunctionSymbol(
                    name=str(entry['name']),
                    start=parse_int(entry['start']),
                    end=parse_int(entry['end']),
                    file=entry.get('file'),
                    line=entry.get('line'),
                )
                for entry in data.get('functions', [])
            ]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SymbolDataError(f"Malformed symbol data: {e}") from e
        return cls(objects, functions)

    @classmethod
    def from_file(cls, filepath: str) -> 'SymbolTable':
        """Load a symbol table, failing if the file is missing or unreadable."""
        path = Path(filepath)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except OSError as e:
            raise SymbolDataError(f"Failed to open symbol file '{filepath}': {e}") from e
        except json.JSONDecodeError as e:
            raise SymbolDataError(f"Symbol file '{filepath}' is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise SymbolDataError(f"Symbol file '{filepath}' must contain a JSON object")
        return cls.from_dict(data)

    def _find(self, starts: List[int], entries: List[Any], value: int):
        index = bisect.bisect_right(starts, value) - 1
        if index >= 0 and entries[index].contains(value):
            return entries[index]
        return None

    def resolve(self, address: int) -> Optional[Tuple[str, int]]:
        obj = self._find(self._object_starts, self.objects, address)
        if obj is None:
            return None
        return obj.name, obj.address

    def describe(self, program_counter: int) -> str:
        func = self._find(self._function_starts, self.functions, program_counter)
        if func is None:
            return f"0x{program_counter:x}"
        description = f"{func.name}+0x{program_counter - func.start:x}"
        if func.file:
            location = func.file if func.line is None else f"{func.file}:{func.line}"
            description += f" ({location})"
        return description


def load_resolver(symbol_file: Optional[str]):
    """Return a ``SymbolTable`` for ``symbol_file``, or an address-only resolver."""
    if symbol_file is None:
        return AddressOnlyResolver()
    return SymbolTable.from_file(symbol_file)

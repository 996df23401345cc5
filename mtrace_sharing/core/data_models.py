from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple, Union
from enum import Enum


# Access tracking granularity is 4 bytes, so the low two address bits are dropped.
ADDRESS_MASK = ~3


class AccessKind(Enum):
    """Kinds of physical memory access recorded in a trace."""
    LOAD = "load"
    STORE = "store"
    INTERRUPT_WRITE = "interrupt-write"

    @property
    def is_write(self) -> bool:
        return self in (AccessKind.STORE, AccessKind.INTERRUPT_WRITE)


class CallState(Enum):
    """Lifecycle states carried by function-call events."""
    START = "start"
    RESUME = "resume"
    PAUSE = "pause"
    END = "end"


class SharingClass(Enum):
    """Classification of a compared scope pair by (abstract, concrete) sharing."""
    UNSHARED = "logically_unshared_physically_unshared"
    SHARED = "logically_shared_physically_shared"
    UNEXPECTED = "logically_unshared_physically_shared"
    IMPRECISE = "logically_shared_physically_unshared"

    @classmethod
    def classify(cls, abstract: bool, concrete: bool) -> 'SharingClass':
        if abstract:
            return cls.SHARED if concrete else cls.IMPRECISE
        return cls.UNEXPECTED if concrete else cls.UNSHARED


# Trace events

@dataclass
class EnableEvent:
    """Recording was switched on or off in the traced system."""
    context: int
    enabled: bool
    mode: str = "ascope"


@dataclass
class ScopeEnterEvent:
    context: int
    name: str


@dataclass
class ScopeExitEvent:
    context: int


@dataclass
class VariableAccessEvent:
    """A declared (abstract) read or write of a named variable."""
    context: int
    name: str
    is_write: bool


@dataclass
class MemoryAccessEvent:
    """A physical load or store observed at a program counter."""
    context: int
    address: int
    access_kind: AccessKind
    program_counter: int


@dataclass
class FunctionCallEvent:
    """Binds, unbinds or retires the call stack identified by ``tag``."""
    context: int
    tag: int
    state: CallState


@dataclass(frozen=True)
class PhysicalAccess:
    """One physical access, optionally resolved to a named object."""
    symbolic_type: Optional[str]
    base_offset: int
    address: int
    program_counter: int

    def __lt__(self, other: 'PhysicalAccess') -> bool:
        return self.address < other.address


@dataclass
class ScopeFrame:
    """Access sets of one active scope on a context's call stack."""
    name: str
    origin_context: int
    abstract_read: Set[str] = field(default_factory=set)
    abstract_write: Set[str] = field(default_factory=set)
    concrete_read: Dict[int, PhysicalAccess] = field(default_factory=dict)
    concrete_write: Dict[int, PhysicalAccess] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        """True when the scope declared no variable accesses at all."""
        return not self.abstract_read and not self.abstract_write

    def snapshot(self) -> 'CompletedScope':
        """Freeze the frame into a key-ordered, independently owned copy."""
        return CompletedScope(
            name=self.name,
            origin_context=self.origin_context,
            abstract_read=tuple(sorted(self.abstract_read)),
            abstract_write=tuple(sorted(self.abstract_write)),
            concrete_read=tuple(self.concrete_read[a] for a in sorted(self.concrete_read)),
            concrete_write=tuple(self.concrete_write[a] for a in sorted(self.concrete_write)),
        )


@dataclass(frozen=True)
class CompletedScope:
    """
    Immutable record of a scope after it exited.

    Names and accesses are stored sorted by key so pairs of scopes can be
    intersected with a single merge walk.
    """
    name: str
    origin_context: int
    abstract_read: Tuple[str, ...] = ()
    abstract_write: Tuple[str, ...] = ()
    concrete_read: Tuple[PhysicalAccess, ...] = ()
    concrete_write: Tuple[PhysicalAccess, ...] = ()

    # Address keys of the concrete sets, derived once on construction
    read_addresses: Tuple[int, ...] = field(init=False, repr=False, compare=False)
    write_addresses: Tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'read_addresses',
                           tuple(access.address for access in self.concrete_read))
        object.__setattr__(self, 'write_addresses',
                           tuple(access.address for access in self.concrete_write))


@dataclass(frozen=True)
class SharedAccess:
    """Both scopes' evidence for one concretely shared address."""
    first: PhysicalAccess
    second: PhysicalAccess

    @property
    def address(self) -> int:
        return self.first.address


@dataclass
class PairResult:
    """Outcome of comparing two completed scopes from different contexts."""
    first: CompletedScope
    second: CompletedScope
    abstract_witness: Optional[str]
    concrete_witness: Optional[int]
    shared: List[SharedAccess] = field(default_factory=list)

    @property
    def classification(self) -> SharingClass:
        return SharingClass.classify(
            self.abstract_witness is not None,
            self.concrete_witness is not None,
        )


# Type aliases for commonly used collections
ScopeRegistry = List[CompletedScope]
TraceEvent = Union[
    EnableEvent, ScopeEnterEvent, ScopeExitEvent,
    VariableAccessEvent, MemoryAccessEvent, FunctionCallEvent,
]

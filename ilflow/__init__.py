"""Public package exports for the CIL method flow analyser."""

from .analysis import MethodAnalysis, MethodAnalyzer, analyze_method
from .clauses import ClauseKind, ExceptionClause, load_clauses
from .dataflow import DataFlowMap
from .errors import (
    BranchTargetError,
    MalformedILError,
    RunBoundaryError,
    TruncatedInstructionError,
    UnknownOpCodeError,
    UnresolvedTokenError,
    UnsupportedILError,
    UnsupportedOperandError,
    UnsupportedStackBehaviourError,
)
from .expression import ExpressionRenderer
from .instruction import Instruction, decode_method, read_instructions
from .listing import ListingRenderer
from .metadata import MetadataCatalog, MetadataResolver, MethodSignature
from .opcodes import FlowControl, OpCode, OperandKind, StackBehaviour
from .paths import PathEnumerator, enumerate_paths, path_key
from .runs import ControlFlowSource, InstructionRun, RunBuilder, SourceKind, build_runs
from .stack import StackSimulator, simulate, simulate_all

__all__ = [
    "MethodAnalysis",
    "MethodAnalyzer",
    "analyze_method",
    "ClauseKind",
    "ExceptionClause",
    "load_clauses",
    "DataFlowMap",
    "BranchTargetError",
    "MalformedILError",
    "RunBoundaryError",
    "TruncatedInstructionError",
    "UnknownOpCodeError",
    "UnresolvedTokenError",
    "UnsupportedILError",
    "UnsupportedOperandError",
    "UnsupportedStackBehaviourError",
    "ExpressionRenderer",
    "Instruction",
    "decode_method",
    "read_instructions",
    "ListingRenderer",
    "MetadataCatalog",
    "MetadataResolver",
    "MethodSignature",
    "FlowControl",
    "OpCode",
    "OperandKind",
    "StackBehaviour",
    "PathEnumerator",
    "enumerate_paths",
    "path_key",
    "ControlFlowSource",
    "InstructionRun",
    "RunBuilder",
    "SourceKind",
    "build_runs",
    "StackSimulator",
    "simulate",
    "simulate_all",
]

"""
Reflection-to-FFI Binding Compiler

Reads the host object model's reflection schema and generates:
  1. Python class/struct/enum bindings calling through a flat function table
  2. Guest import manifest and host closures for the sandboxed call path
  3. C++ wrappers implementing the native call ABI, plus the FuncId tables
"""

from .types import ClassInfo, StructInfo, EnumInfo, PropertyInfo, FunctionInfo, ReflectionSchema
from .parser import SchemaParser
from .config import CodegenConfig, load_config, parse_codegen
from .errors import CodegenError, ConfigError, SchemaError, StrictModeError, VerificationError
from .type_mapper import TypeMapper, ConversionKind
from .context import CodegenContext, FuncEntry, build_func_table
from .filter import apply_filters
from .pipeline import prepare_context, render, run_generate

__all__ = [
    'ClassInfo', 'StructInfo', 'EnumInfo', 'PropertyInfo', 'FunctionInfo', 'ReflectionSchema',
    'SchemaParser', 'CodegenConfig', 'load_config', 'parse_codegen',
    'CodegenError', 'ConfigError', 'SchemaError', 'StrictModeError', 'VerificationError',
    'TypeMapper', 'ConversionKind', 'CodegenContext', 'FuncEntry', 'build_func_table',
    'apply_filters', 'prepare_context', 'render', 'run_generate',
]

"""Runtime support imported by generated bindings"""

from .api import api, dispatch, init_api, init_api_from_table, is_api_initialized, shutdown_api
from .containers import UeArray, UeMap, UeSet, elements
from .delegates import DelegateBinding
from .dynamic_call import DynamicCall
from .errors import (
    BufferTooSmallError, FunctionNotFoundError, IndexOutOfRangeError, InternalError,
    InvalidCastError, InvalidOperationError, NullArgumentError, ObjectDestroyedError,
    PropertyNotFoundError, TypeMismatchError, UikaError, UikaErrorCode,
)
from .guest import install_guest_env, is_guest, uninstall_guest_env
from .handles import (
    FNameHandle, OwnedStruct, UClassBinding, UObjectHandle, UObjectRef, UStructBinding, WeakObjectRef,
)

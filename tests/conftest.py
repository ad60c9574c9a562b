import importlib
import itertools
import struct
import sys
from types import SimpleNamespace

import pytest

from builders import FakeHost, NativeTable, config, read_c, sample_schema, tally_class, write_c
from uikagen.pipeline import prepare_context, render, write_output
from uikagen.runtime import delegates
from uikagen.runtime.api import init_api, is_api_initialized, shutdown_api
from uikagen.runtime.errors import UikaErrorCode
from uikagen.runtime.guest import BytearrayMemory, install_guest_env, uninstall_guest_env
from uikagen.runtime.sandbox import InProcessLinker

OK = UikaErrorCode.OK

_package_ids = itertools.count()


@pytest.fixture(autouse=True)
def reset_runtime():
    yield
    if is_api_initialized():
        shutdown_api()
    delegates.clear_all()
    uninstall_guest_env()


@pytest.fixture
def schema():
    return sample_schema()


@pytest.fixture
def cfg():
    return config()


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def generate(tmp_path, monkeypatch):
    """Render a schema into a fresh importable package; returns (ctx, output, package)"""
    names = []
    monkeypatch.syspath_prepend(str(tmp_path))

    def _generate(schema, cfg):
        ctx = prepare_context(schema, cfg)
        out = render(ctx, cfg)
        name = f"uika_bindings_{next(_package_ids)}"
        write_output(out, tmp_path / name, tmp_path / f"{name}_cpp")
        names.append(name)
        importlib.invalidate_caches()
        return ctx, out, importlib.import_module(name)

    yield _generate
    for module in list(sys.modules):
        if module.split(".")[0] in names:
            del sys.modules[module]


@pytest.fixture
def bindings(generate, schema, cfg):
    ctx, out, pkg = generate(schema, cfg)
    return SimpleNamespace(
        ctx=ctx, out=out, pkg=pkg,
        actor_module=importlib.import_module(f"{pkg.__name__}.engine.actor"),
    )


class ActorNatives:
    """Python stand-ins for the Actor entries of the function table"""

    def __init__(self, host: FakeHost):
        self.host = host
        self.calls = []
        self.sum_code = OK

    def entries(self) -> dict:
        return {
            "ADD": self.add,
            "SCALE": self.scale,
            "GET_ACTOR_LOCATION": self.get_actor_location,
            "DESCRIBE": self.describe,
            "CURRENT_COLOR": self.current_color,
            "SET_SIGNED": self.set_signed,
            "SUM": self.sum,
            "RANGE": self.range,
            "OVERLOAD": self.overload,
            "OVERLOAD_1": self.overload_1,
            "GET_DEFAULT_HEALTH": self.get_default_health,
            "WIDE": self.wide,
            "SET_LABEL": self.set_label,
        }

    def add(self, obj, a, b, out):
        out[0] = a + b
        return OK

    def scale(self, obj, value, factor, out):
        out[0] = value * factor
        return OK

    def get_actor_location(self, obj, buf):
        write_c(buf, struct.pack("<3d", 1.0, 2.0, 3.0))
        return OK

    def describe(self, obj, prefix, prefix_len, out_count, buf, buf_len, out_len):
        text = read_c(prefix, prefix_len) + b"!"
        write_c(buf, text[:buf_len])
        out_len[0] = len(text)
        out_count[0] = len(text)
        return OK

    def current_color(self, obj, out):
        out[0] = 2
        return OK

    def set_signed(self, obj, value):
        self.calls.append(("set_signed", value))
        return OK

    def sum(self, obj, base, prop, out):
        if self.sum_code != OK:
            return self.sum_code
        items = self.host.containers[(base, prop)]
        out[0] = sum(struct.unpack("<i", d)[0] for d in items)
        return OK

    def range(self, obj, count, base, prop):
        self.host.containers[(base, prop)].extend(struct.pack("<i", i) for i in range(count))
        return OK

    def overload(self, obj, a):
        self.calls.append(("overload", a))
        return OK

    def overload_1(self, obj, a, b):
        self.calls.append(("overload_1", a, b))
        return OK

    def get_default_health(self, out):
        out[0] = 100.0
        return OK

    def wide(self, obj, *args):
        self.calls.append(("wide", sum(args)))
        return OK

    def set_label(self, obj, data, length):
        self.calls.append(("set_label", read_c(data, length).decode("utf-8")))
        return OK


@pytest.fixture
def native(bindings, host):
    """Sample bindings over the fake host with Python callbacks in the function table"""
    natives = ActorNatives(host)
    ids = bindings.pkg.func_ids
    table = NativeTable(ids.FUNC_COUNT)
    for key, fn in natives.entries().items():
        table.bind(bindings.actor_module, getattr(ids, f"ENGINE__ACTOR__{key}"), fn)
    init_api(host, table.addresses)
    bindings.host = host
    bindings.natives = natives
    bindings.table = table
    bindings.actor = bindings.pkg.engine.Actor(host.spawn())
    return bindings


def enter_guest(bindings):
    """Route the generated package's calls through guest imports and host closures"""
    linker = InProcessLinker()
    host_funcs = importlib.import_module(f"{bindings.pkg.__name__}.wasm_host_funcs")
    bindings.registered = host_funcs.register_codegen_host_functions(linker)
    bindings.linker = linker
    bindings.memory = BytearrayMemory()
    install_guest_env(linker.guest_env(bindings.memory))
    return bindings


@pytest.fixture
def sandboxed(native):
    """Same as `native`, in guest mode"""
    return enter_guest(native)


class TallyNatives:
    """Python stand-ins for the Tally entries of the function table"""

    def __init__(self, host: FakeHost):
        self.host = host
        self.seen = []
        self.count_code = OK

    def entries(self) -> dict:
        return {"ECHO": self.echo, "COUNT": self.count, "KEYS": self.keys}

    def echo(self, obj, data, length, buf, buf_len, out_len):
        text = read_c(data, length).decode("utf-8").upper().encode("utf-8")
        write_c(buf, text[:buf_len])
        out_len[0] = len(text)
        return OK

    def count(self, obj, ids_base, ids_prop, weights_base, weights_prop, out):
        if self.count_code != OK:
            return self.count_code
        ids = [struct.unpack("<i", d)[0] for d in self.host.containers[(ids_base, ids_prop)]]
        weights = [(k[4:].decode("utf-8"), struct.unpack("<i", v)[0])
                   for k, v in self.host.containers[(weights_base, weights_prop)]]
        self.seen.append((ids, weights))
        out[0] = sum(ids) + sum(v for _, v in weights)
        return OK

    def keys(self, obj, weights_base, weights_prop, names_base, names_prop):
        names = self.host.containers[(names_base, names_prop)]
        for key, _ in self.host.containers[(weights_base, weights_prop)]:
            if key not in names:
                names.append(key)
        return OK


@pytest.fixture
def tally(generate, schema, cfg, host):
    """Bindings with a Tally class over the fake host, native mode"""
    schema.classes.append(tally_class())
    ctx, out, pkg = generate(schema, cfg)
    module = importlib.import_module(f"{pkg.__name__}.engine.tally")
    natives = TallyNatives(host)
    table = NativeTable(pkg.func_ids.FUNC_COUNT)
    for key, fn in natives.entries().items():
        table.bind(module, getattr(pkg.func_ids, f"ENGINE__TALLY__{key}"), fn)
    init_api(host, table.addresses)
    return SimpleNamespace(ctx=ctx, pkg=pkg, host=host, natives=natives, table=table,
                           tally=pkg.engine.Tally(host.spawn()))


@pytest.fixture
def tally_sandboxed(tally):
    return enter_guest(tally)

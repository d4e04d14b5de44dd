"""Tests for the ctypes backend with a mocked shared library."""

from __future__ import annotations

import ctypes
from unittest.mock import MagicMock, patch

import pytest

from pysegnet.engine.config.segnet_config import EngineConfig
from pysegnet.engine.native_engine import (
    LIBRARY_ENV_VAR,
    NativeEngine,
    NativeEngineFactory,
    find_library,
    load_library,
)
from pysegnet.engine.networks import NetworkType
from pysegnet.errors import AllocationError, ConstructionError
from pysegnet.vision.buffers import ImageBuffer
from pysegnet.vision.segnet_wrapper import SegNet


# ---------------------------------------------------------------------------
# Mock helpers
# ---------------------------------------------------------------------------

def _make_mock_lib(handle=0x5000):
    lib = MagicMock()
    lib.segnet_create.return_value = handle
    lib.segnet_create_argv.return_value = handle
    lib.segnet_process.return_value = True
    lib.segnet_overlay.return_value = True
    lib.segnet_mask.return_value = True
    return lib


def _make_factory(lib):
    factory = NativeEngineFactory(EngineConfig(library_path="libfake_segnet.so"))
    factory._lib = lib
    return factory


# ---------------------------------------------------------------------------
# Library discovery / loading
# ---------------------------------------------------------------------------

class TestFindLibrary:

    def test_explicit_path_wins(self, monkeypatch):
        monkeypatch.setenv(LIBRARY_ENV_VAR, "/env/libsegnet.so")
        assert find_library("/explicit/libsegnet.so") == "/explicit/libsegnet.so"

    def test_env_var(self, monkeypatch):
        monkeypatch.setenv(LIBRARY_ENV_VAR, "/env/libsegnet.so")
        assert find_library(None) == "/env/libsegnet.so"

    def test_loader_path(self, monkeypatch):
        monkeypatch.delenv(LIBRARY_ENV_VAR, raising=False)
        with patch("ctypes.util.find_library", return_value="libsegnet.so.1"):
            assert find_library(None) == "libsegnet.so.1"

    def test_not_found(self, monkeypatch):
        monkeypatch.delenv(LIBRARY_ENV_VAR, raising=False)
        with patch("ctypes.util.find_library", return_value=None):
            with pytest.raises(ConstructionError):
                find_library(None)


class TestLoadLibrary:

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConstructionError):
            load_library(str(tmp_path / "libmissing.so"))

    def test_registers_signatures_once(self):
        fake = _make_mock_lib()
        load_library.cache_clear()
        try:
            with patch("ctypes.CDLL", return_value=fake) as cdll:
                lib1 = load_library("libsignatures.so")
                lib2 = load_library("libsignatures.so")
            assert lib1 is lib2 is fake
            assert cdll.call_count == 1
            assert fake.segnet_process.restype is ctypes.c_bool
            assert fake.segnet_create.restype is ctypes.c_void_p
            assert fake.segnet_destroy.restype is None
        finally:
            load_library.cache_clear()

    def test_missing_symbol(self):
        fake = MagicMock(spec=["segnet_create"])
        load_library.cache_clear()
        try:
            with patch("ctypes.CDLL", return_value=fake):
                with pytest.raises(ConstructionError, match="C ABI"):
                    load_library("libpartial.so")
        finally:
            load_library.cache_clear()


# ---------------------------------------------------------------------------
# Factory / engine
# ---------------------------------------------------------------------------

class TestNativeEngineFactory:

    def test_from_network_passes_enum_value(self):
        lib = _make_mock_lib()
        engine = _make_factory(lib).from_network(NetworkType.FCN_ALEXNET_CITYSCAPES_SD)
        lib.segnet_create.assert_called_once_with(5)
        assert isinstance(engine, NativeEngine)
        assert engine.handle == 0x5000

    def test_from_network_null_handle(self):
        lib = _make_mock_lib(handle=None)
        assert _make_factory(lib).from_network(NetworkType.FCN_ALEXNET_AERIAL_FPV_720p) is None

    def test_from_argv_marshals_tokens(self):
        lib = _make_mock_lib()
        engine = _make_factory(lib).from_argv(["--model=a.caffemodel", "--labels=l.txt"])
        assert engine is not None
        argc, argv = lib.segnet_create_argv.call_args[0]
        assert argc == 2
        assert argv[0] == b"--model=a.caffemodel"
        assert argv[1] == b"--labels=l.txt"

    def test_from_argv_null_handle(self):
        lib = _make_mock_lib(handle=0)
        assert _make_factory(lib).from_argv(["--model=x"]) is None

    def test_from_argv_allocation_failure(self):
        lib = _make_mock_lib()
        c_char_p = MagicMock()
        c_char_p.__mul__.return_value = MagicMock(side_effect=MemoryError)
        with patch("pysegnet.engine.native_engine.ctypes.c_char_p", c_char_p):
            with pytest.raises(AllocationError, match="argv list"):
                _make_factory(lib).from_argv(["--model=a"])
        lib.segnet_create_argv.assert_not_called()

    def test_allocation_error_is_memory_error(self):
        lib = _make_mock_lib()
        c_char_p = MagicMock()
        c_char_p.__mul__.return_value = MagicMock(side_effect=MemoryError)
        with patch("pysegnet.engine.native_engine.ctypes.c_char_p", c_char_p):
            with pytest.raises(MemoryError):
                SegNet(argv=["--model=a"], factory=_make_factory(lib))

    def test_lazy_load(self):
        lib = _make_mock_lib()
        factory = NativeEngineFactory(EngineConfig(library_path="liblazy.so"))
        with patch("pysegnet.engine.native_engine.load_library", return_value=lib) as loader:
            factory.from_network(NetworkType.FCN_ALEXNET_PASCAL_VOC)
            factory.from_network(NetworkType.FCN_ALEXNET_PASCAL_VOC)
        loader.assert_called_once_with("liblazy.so")


class TestNativeEngine:

    def test_dispatch_to_distinct_symbols(self):
        lib = _make_mock_lib()
        engine = NativeEngine(lib, 0x5000)
        buf = ImageBuffer(ptr=0x9000, nbytes=64)

        assert engine.process(buf, 4, 1) is True
        assert engine.overlay(buf, 4, 1) is True
        assert engine.mask(buf, 4, 1) is True

        for fn in (lib.segnet_process, lib.segnet_overlay, lib.segnet_mask):
            handle, ptr, w, h = fn.call_args[0]
            assert handle == 0x5000
            assert ptr.value == 0x9000
            assert (w, h) == (4, 1)

    def test_failure_flag(self):
        lib = _make_mock_lib()
        lib.segnet_overlay.return_value = False
        engine = NativeEngine(lib, 0x5000)
        assert engine.overlay(ImageBuffer(ptr=0x9000), 4, 4) is False

    def test_close_destroys_once(self):
        lib = _make_mock_lib()
        engine = NativeEngine(lib, 0x5000)
        engine.close()
        engine.close()
        lib.segnet_destroy.assert_called_once_with(0x5000)
        assert engine.handle is None


class TestSegNetOverNativeBackend:

    def test_end_to_end(self, image):
        lib = _make_mock_lib()
        net = SegNet("aerial-fpv", factory=_make_factory(lib))
        net.process(image, 300, 300)
        net.overlay(image, 300, 300, mask=True)
        lib.segnet_create.assert_called_once_with(6)
        assert lib.segnet_process.call_args[0][1].value == image.ctypes.data
        lib.segnet_mask.assert_called_once()
        lib.segnet_overlay.assert_not_called()
        net.close()
        lib.segnet_destroy.assert_called_once_with(0x5000)

    def test_library_not_found_is_construction_error(self, monkeypatch):
        monkeypatch.delenv(LIBRARY_ENV_VAR, raising=False)
        with patch("ctypes.util.find_library", return_value=None):
            with pytest.raises(ConstructionError):
                SegNet("aerial-fpv")

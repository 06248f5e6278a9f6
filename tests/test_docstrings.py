# Copyright (C) 2025 Richard Owen
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""Docstring completeness checks for the public and private API."""

from __future__ import annotations

import importlib
import inspect
import pkgutil
from types import ModuleType
from typing import Iterator, List

import pytest
from numpydoc.docscrape import NumpyDocString

import matchseal

_NONE_ANNOTATIONS = {"None", "none", "NoneType", None, type(None)}


def _iter_modules() -> Iterator[ModuleType]:
    yield matchseal
    for info in pkgutil.walk_packages(matchseal.__path__, prefix="matchseal."):
        yield importlib.import_module(info.name)


def _own(obj: object, module: ModuleType) -> bool:
    return getattr(obj, "__module__", None) == module.__name__


def _documented_callables() -> List[object]:
    found: List[object] = []
    for module in _iter_modules():
        for name, obj in vars(module).items():
            if name.startswith("__") or not _own(obj, module):
                continue
            if inspect.isfunction(obj):
                found.append(obj)
            elif inspect.isclass(obj):
                found.append(obj)
                for attr, member in vars(obj).items():
                    if attr.startswith("__"):
                        continue
                    if isinstance(member, (staticmethod, classmethod)):
                        member = member.__func__
                    if inspect.isfunction(member):
                        found.append(member)
    return found


_CALLABLES = _documented_callables()


def _label(obj: object) -> str:
    return f"{obj.__module__}.{obj.__qualname__}"  # type: ignore[attr-defined]


def _parsed(obj: object) -> NumpyDocString:
    return NumpyDocString(inspect.getdoc(obj) or "")


@pytest.mark.parametrize("module", list(_iter_modules()), ids=lambda m: m.__name__)
def test_modules_are_importable(module: ModuleType) -> None:
    """Every module imports without side effects on the caller."""
    assert module.__name__.startswith("matchseal")


@pytest.mark.parametrize("obj", _CALLABLES, ids=_label)
def test_parameters_are_documented(obj: object) -> None:
    """Every named parameter appears in the Parameters section."""
    params = [
        p.name
        for p in inspect.signature(obj).parameters.values()  # type: ignore[arg-type]
        if p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD) and p.name not in {"self", "cls"}
    ]
    if not params:
        pytest.skip("No parameters requiring documentation")

    documented = {name for name, _, _ in _parsed(obj)["Parameters"]}
    missing = [name for name in params if name not in documented]
    assert not missing, f"{_label(obj)} does not document: {', '.join(missing)}"


@pytest.mark.parametrize("obj", [o for o in _CALLABLES if not inspect.isclass(o)], ids=_label)
def test_returns_are_documented(obj: object) -> None:
    """A Returns section is required whenever a non-None value is annotated."""
    annotation = inspect.signature(obj).return_annotation  # type: ignore[arg-type]
    if annotation is inspect.Signature.empty or annotation in _NONE_ANNOTATIONS:
        pytest.skip("Return value does not require documentation")

    assert _parsed(obj)["Returns"], f"{_label(obj)} is missing a Returns section"

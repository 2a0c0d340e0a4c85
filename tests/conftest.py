from __future__ import annotations

import random

import pytest

from tickerdeck.prefs import MemoryPreferenceStore


@pytest.fixture()
def rng():
    return random.Random(1234)


@pytest.fixture()
def prefs():
    return MemoryPreferenceStore()

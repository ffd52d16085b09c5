import itertools

import pytest

from macro_registry import macro_registry, priority


class TestReservedMacros:
    def test_all_and_unknown(self):
        registry = macro_registry([1, 2, 3])
        assert registry.resolve("*").members == {1, 2, 3}
        assert registry.resolve("?").members == set()
        assert "*" in registry and "?" in registry
        assert registry.resolve("a") is None

    def test_reserved_tiers(self):
        registry = macro_registry([1])
        assert registry.resolve("*").tier == priority.ALL
        assert registry.resolve("?").tier == priority.UNKNOWN


class TestPriority:
    def test_keys_rank_tiers_then_creation(self):
        registry = macro_registry([1, 2])
        a = registry.define("a", [1])
        b = registry.define("b", [2])
        assert registry.resolve("*").key < a.key < b.key
        assert b.key < registry.resolve("?").key
        assert registry.resolve("?").key < (priority.EXPLICIT, 0)

    def test_redefinition_keeps_creation_order(self):
        registry = macro_registry([1, 2])
        a = registry.define("a", [1])
        b = registry.define("b", [2])
        registry.define("a", [2])
        assert registry.resolve("a") is a
        assert a.key < b.key

    def test_shared_sequence_orders_across_registries(self):
        sequence = itertools.count(1)
        first = macro_registry([1], sequence)
        second = macro_registry([1], sequence)
        x = first.define("x", [1])
        y = second.define("y", [1])
        assert x.key < y.key


class TestMembership:
    def test_add_and_subtract(self):
        registry = macro_registry([1, 2, 3])
        registry.define("m", [1])
        registry.add("m", [2, 3])
        assert registry.resolve("m").members == {1, 2, 3}
        registry.subtract("m", [2])
        assert registry.resolve("m").members == {1, 3}
        assert 3 in registry.resolve("m")

    def test_add_creates_missing_macro(self):
        registry = macro_registry([1])
        registry.add("n", [1])
        assert registry.resolve("n").members == {1}
        assert registry.resolve("n").tier == priority.ORDINARY

    def test_check_does_not_mutate(self):
        registry = macro_registry([1, 2])
        registry.define("m", [1])
        assert registry.check("m", [1, 2]) == [2]
        assert registry.resolve("m").members == {1}

    def test_check_missing_macro(self):
        registry = macro_registry([1, 2])
        assert registry.check("z", [1, 2]) == [1, 2]
        assert registry.resolve("z") is None

    def test_names_are_one_character(self):
        registry = macro_registry([1])
        with pytest.raises(ValueError):
            registry.get_or_create("ab")

import numpy as np
import pytest

from blockmrf import Block, BlockModel


def test_block_cardinality_counts_none_state():
    assert Block(0, 3, exactly_one=True).cardinality == 3
    assert Block(0, 3, exactly_one=False).cardinality == 4


def test_variable_for_exactly_one_and_none():
    assert Block(4, 6, exactly_one=True).variable_for(1) == 5
    none_block = Block(4, 6, exactly_one=False)
    assert none_block.variable_for(0) is None
    assert none_block.variable_for(2) == 5
    with pytest.raises(IndexError):
        none_block.variable_for(3)


def test_blocks_are_contiguous_ranges():
    model = BlockModel()
    assert model.add_block(2) == 0
    free = model.add_variable(1.0)
    assert model.add_block(3, exactly_one=False, values=[0.0, 0.5, 0.0]) == 1
    assert free == 2
    assert list(model.blocks[1].variables) == [3, 4, 5]
    assert model.block_of(free) is None
    assert model.block_of(4) == 1
    assert model.n_variables == 6
    assert model.cardinalities == [2, 4]


def test_add_block_rejects_bad_input():
    model = BlockModel()
    with pytest.raises(ValueError):
        model.add_block(0)
    with pytest.raises(ValueError):
        model.add_block(2, values=[0.0])
    with pytest.raises(ValueError):
        model.add_block(1, values=[1.5])


def test_set_value_range():
    model = BlockModel()
    v = model.add_variable()
    model.set_value(v, 0.3)
    assert model.get_value(v) == pytest.approx(0.3)
    with pytest.raises(ValueError):
        model.set_value(v, -0.1)


def test_assign_and_read_category():
    model = BlockModel()
    model.add_block(3, exactly_one=False, values=[0.2, 0.7, 0.1])
    model.assign_category(0, 2)
    np.testing.assert_array_equal(model.values, [0.0, 1.0, 0.0])
    assert model.category_of(0) == 2
    model.assign_category(0, 0)
    np.testing.assert_array_equal(model.values, [0.0, 0.0, 0.0])
    assert model.category_of(0) == 0


def test_category_of_rejects_invalid_state():
    model = BlockModel()
    model.add_block(2, exactly_one=True)
    with pytest.raises(ValueError):
        model.category_of(0)
    model.values[:] = [1.0, 1.0]
    with pytest.raises(ValueError):
        model.category_of(0)


def test_commit_records_and_forwards():
    seen = []
    model = BlockModel(commit_sink=lambda var, value: seen.append((var, value)))
    v = model.add_variable(1.0)
    model.commit(v)
    assert model.committed == {v: 1.0}
    assert seen == [(v, 1.0)]


def test_snapshot_restore():
    model = BlockModel()
    model.add_block(2, values=[0.4, 0.6])
    saved = model.snapshot()
    model.assign_category(0, 0)
    model.restore(saved)
    np.testing.assert_allclose(model.values, [0.4, 0.6])

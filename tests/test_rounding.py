import numpy as np
import pytest

from blockmrf import ArithmeticRule, BlockModel, GreedyRounder, LogicalRule, RuleIndex
from blockmrf.rounding import (
    block_violations,
    greedy_order,
    greedy_round,
    remap_values,
    simple_round,
)


def free_model(values):
    model = BlockModel()
    for v in values:
        model.add_variable(v)
    return model


def test_remap_compresses_toward_middle():
    model = free_model([0.0, 0.5, 1.0, 0.2])
    remap_values(model, [0, 1, 2])
    np.testing.assert_allclose(model.values, [0.25, 0.5, 0.75, 0.2])


def test_greedy_order_descending_and_stable():
    model = free_model([0.5, 0.9, 0.5, 0.1])
    assert greedy_order(model, [0, 1, 2, 3]) == [1, 0, 2, 3]
    assert greedy_order(model, [2, 0, 3, 1]) == [1, 2, 0, 3]


def test_idempotent_on_discrete_input_without_rules():
    values = [0.0, 1.0, 1.0, 0.0, 1.0]
    model = free_model(values)
    result = greedy_round(model, range(len(values)), RuleIndex())
    np.testing.assert_array_equal(model.values, values)
    np.testing.assert_array_equal(result.values, values)
    assert result.n_changed == 0
    assert model.committed == {i: v for i, v in enumerate(values)}


def test_exclusive_pair_goes_to_higher_value():
    model = free_model([0.9, 0.8])
    index = RuleIndex.from_rules([
        LogicalRule([(0, False), (1, False)], weight=1.0),  # not both
        LogicalRule([(0, True)], weight=1.0),
        LogicalRule([(1, True)], weight=0.5),
    ])
    result = GreedyRounder(index).round(model, [1, 0])
    np.testing.assert_array_equal(model.values, [1.0, 0.0])
    assert result.n_ones == 1
    assert result.n_changed == 1


def test_decisions_see_earlier_commits():
    # x0 goes first while x1 is still undecided: "not both" outweighs x0's
    # weak prior, so x0 drops to 0 and x1 is then free to take 1.
    model = free_model([0.9, 0.8])
    index = RuleIndex.from_rules([
        LogicalRule([(0, False), (1, False)], weight=1.0),
        LogicalRule([(0, True)], weight=0.5),
        LogicalRule([(1, True)], weight=0.5),
    ])
    GreedyRounder(index).round(model, [0, 1])
    np.testing.assert_array_equal(model.values, [0.0, 1.0])


def test_score_tie_prefers_later_value():
    neutral = ArithmeticRule({0: 0.0}, constant=0.0, weight=1.0)
    model = free_model([0.1])
    GreedyRounder(RuleIndex.from_rules([neutral])).round(model, [0])
    assert model.values[0] == 1.0

    model = free_model([0.1])
    GreedyRounder(RuleIndex.from_rules([neutral]), tie_break="earlier").round(model, [0])
    assert model.values[0] == 0.0


def test_unknown_tie_break_rejected():
    with pytest.raises(ValueError):
        GreedyRounder(RuleIndex(), tie_break="random")


def test_only_open_variables_change():
    model = free_model([0.7, 0.4, 0.6])
    index = RuleIndex.from_rules([LogicalRule([(0, True), (2, True)], weight=1.0)])
    greedy_round(model, [0, 1], index)
    assert model.values[2] == pytest.approx(0.6)
    assert set(model.committed) == {0, 1}
    assert set(model.values[:2]) <= {0.0, 1.0}


def test_greedy_round_defaults_to_model_rules():
    model = free_model([0.6, 0.6])
    model.add_rule(LogicalRule([(0, False), (1, False)], weight=2.0))
    greedy_round(model, [0, 1])
    assert sorted(model.values) == [0.0, 1.0]


def test_parallel_components_match_sequential():
    rng = np.random.default_rng(3)
    values = rng.random(40)
    rules = []
    for i in range(0, 40, 2):
        rules.append(LogicalRule([(i, False), (i + 1, False)], weight=1.0))
        rules.append(LogicalRule([(i, True)], weight=float(rng.random())))
        rules.append(LogicalRule([(i + 1, True)], weight=float(rng.random())))

    sequential = free_model(values)
    parallel = free_model(values)
    GreedyRounder(RuleIndex.from_rules(rules)).round(sequential, range(40))
    GreedyRounder(RuleIndex.from_rules(rules), n_workers=4).round(parallel, range(40))
    np.testing.assert_array_equal(sequential.values, parallel.values)
    assert len(parallel.committed) == 40


def test_simple_round_extremes_and_seed():
    model = free_model([0.0, 1.0, 0.5, 0.5])
    result = simple_round(model, range(4), seed=11)
    assert model.values[0] == 0.0
    assert model.values[1] == 1.0
    assert set(result.values) <= {0.0, 1.0}

    again = free_model([0.0, 1.0, 0.5, 0.5])
    simple_round(again, range(4), seed=11)
    np.testing.assert_array_equal(model.values, again.values)


def test_simple_round_frequency():
    model = free_model([0.3] * 2000)
    result = simple_round(model, range(2000), rng=np.random.default_rng(0))
    assert abs(result.n_ones / 2000 - 0.3) < 0.05
    assert len(model.committed) == 2000


def test_block_violations_reported_not_raised():
    model = BlockModel()
    model.add_block(2, exactly_one=True, values=[0.6, 0.7])
    model.add_block(2, exactly_one=False, values=[0.2, 0.1])
    model.add_block(2, exactly_one=True, values=[0.9, 0.1])
    greedy_round(model, range(6), RuleIndex())
    # nearest values: [1, 1] [0, 0] [1, 0]
    assert block_violations(model) == [0]


def test_variable_without_rules_ignores_tie_break():
    model = free_model([0.2, 0.7])
    for tie_break in ("later", "earlier"):
        result = GreedyRounder(RuleIndex(), tie_break=tie_break).round(model, [0, 1])
        np.testing.assert_array_equal(result.values, [0.0, 1.0])

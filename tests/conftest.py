import math

import pytest

from blockmrf import ArithmeticRule, BlockModel, LogicalRule


@pytest.fixture
def single_block_model():
    """One exactly-one block of size 2 and one always-satisfied rule on category 0."""
    model = BlockModel()
    model.add_block(2, exactly_one=True)
    model.add_rule(ArithmeticRule({0: 1.0}, constant=1.0, weight=1.0, name="bound"))
    return model


@pytest.fixture
def mixed_model():
    """
    Block 0: exactly-one, variables 0, 1   (cardinality 2)
    Block 1: zero-or-one, variable 2       (cardinality 2)
    Variable 3: free (observed false)
    Rule "either": x2 | x0, atoms listed out of block order
    Rule "observed": x3, touches no block
    """
    model = BlockModel()
    model.add_block(2, exactly_one=True)
    model.add_block(1, exactly_one=False)
    model.add_variable(0.0)
    model.add_rule(LogicalRule([(2, True), (0, True)], weight=1.0, name="either"))
    model.add_rule(LogicalRule([(3, True)], weight=1.0, name="observed"))
    return model


@pytest.fixture
def e_inv():
    return math.exp(-1.0)

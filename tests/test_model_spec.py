"""
Unit tests for model specifications and parameter binding.

Tests cover:
- Parameter layouts and scalar labels
- Binding validation (class range, class table)
- Linear predictor
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from ridership_bayes.data.dataset import ClassTable, DataSet
from ridership_bayes.errors import DataBindingError
from ridership_bayes.model.priors import PriorSpec
from ridership_bayes.model.spec import HierarchicalSpec, ParameterLayout, PooledSpec, make_spec


class TestParameterLayout:
    """Tests for ParameterLayout."""

    def test_hierarchical_layout(self) -> None:
        spec = HierarchicalSpec()
        layout = spec.layout
        assert layout.names == ["A", "B_H", "sigma", "sigma_class", "sigma_hours", "a_C", "b_H"]
        assert layout.size == 5 + 2 * 4
        assert layout.positive_names == ["sigma", "sigma_class", "sigma_hours"]
        assert layout.scalar_names()[5] == "a_C[1]"
        assert layout.scalar_names()[-1] == "b_H[4]"

    def test_pooled_layout(self) -> None:
        layout = PooledSpec().layout
        assert layout.names == ["mu", "sigma"]
        assert layout.positive_names == ["sigma"]
        assert layout.scalar_names() == ["mu", "sigma"]

    def test_unpack_batched(self) -> None:
        layout = ParameterLayout([("x", (), False), ("v", (3,), False)])
        flat = np.arange(8.0).reshape(2, 4)
        values = layout.unpack(flat)
        assert values["x"].shape == (2,)
        assert values["v"].shape == (2, 3)
        assert_allclose(values["v"][1], [5.0, 6.0, 7.0])

    def test_pack_inverts_unpack(self) -> None:
        layout = HierarchicalSpec().layout
        flat = np.linspace(-1.0, 1.0, layout.size)
        assert_allclose(layout.pack(layout.unpack(flat)), flat)


class TestBinding:
    """Tests for ModelSpec.bind validation."""

    def test_class_out_of_range(self) -> None:
        ds = DataSet(["a", "b"], [1, 5], [0.0, 0.1], [0.0, 0.0])
        with pytest.raises(DataBindingError, match=r"\[1, 4\]"):
            HierarchicalSpec().bind(ds)

    def test_class_zero_rejected_for_pooled(self) -> None:
        ds = DataSet(["a"], [0], [0.0], [0.0])
        with pytest.raises(DataBindingError):
            PooledSpec().bind(ds)

    def test_class_table_mismatch(self) -> None:
        table = ClassTable(["x", "y"], version="other")
        ds = DataSet(["a"], [1], [0.0], [0.0], class_table=table)
        with pytest.raises(DataBindingError, match="class table"):
            HierarchicalSpec().bind(ds)

    def test_bound_arrays_zero_based(self) -> None:
        ds = DataSet(["a", "b"], [1, 4], [0.0, 0.1], [0.0, 0.0])
        bound = HierarchicalSpec().bind(ds)
        assert bound.class_zero.tolist() == [0, 3]
        assert bound.n_obs == 2

    def test_bound_arrays_read_only(self) -> None:
        ds = DataSet(["a", "b"], [1, 4], [0.0, 0.1], [0.0, 0.0])
        bound = HierarchicalSpec().bind(ds)
        with pytest.raises(ValueError):
            bound.response[0] = 1.0


class TestLinearPredictor:
    """Tests for the vectorized linear predictor."""

    def test_hierarchical(self) -> None:
        spec = HierarchicalSpec()
        params = {
            "a_C": np.array([[0.0, 0.1, 0.2, 0.3], [1.0, 1.1, 1.2, 1.3]]),
            "b_H": np.array([[-1.0, -2.0, -3.0, -4.0], [1.0, 2.0, 3.0, 4.0]]),
        }
        out = spec.linear_predictor(params, np.array([1, 4]), np.array([0.5, 0.5]))
        assert out.shape == (2, 2)
        assert_allclose(out, [[-0.5, 0.3 - 2.0], [1.5, 1.3 + 2.0]])

    def test_pooled_is_constant(self) -> None:
        out = PooledSpec().linear_predictor({"mu": np.array([0.1, 0.2, 0.3])}, [1, 2], [0.0, 0.9])
        assert out.shape == (3, 2)
        assert_allclose(out[:, 0], out[:, 1])

    def test_inputs_not_mutated(self) -> None:
        spec = HierarchicalSpec()
        a = np.linspace(0.0, 0.3, 4)[None, :]
        b = np.full((1, 4), -0.3)
        hours = np.array([0.0, 0.5])
        first = spec.linear_predictor({"a_C": a, "b_H": b}, np.array([2, 2]), hours)
        second = spec.linear_predictor({"a_C": a, "b_H": b}, np.array([2, 2]), hours)
        assert_allclose(first, second)
        assert_allclose(a, np.linspace(0.0, 0.3, 4)[None, :])
        assert_allclose(hours, [0.0, 0.5])


class TestMakeSpec:
    def test_known_kinds(self) -> None:
        assert isinstance(make_spec("pooled"), PooledSpec)
        assert make_spec("hierarchical").kind == "hierarchical"

    def test_unknown_kind(self) -> None:
        with pytest.raises(ValueError, match="Unknown model kind"):
            make_spec("mixture")

    def test_prior_scales_validated(self) -> None:
        with pytest.raises(ValueError, match="scale_beta"):
            PriorSpec(scale_beta=0.0)

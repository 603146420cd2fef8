"""
Tests for neural network infrastructure.

Tests Architecture and FeedForwardNetwork for:
- Topology tags and validation
- Deterministic, shape-checked inference
- Portable record round trips and legacy records
- Architecture mismatch reporting
"""
import pytest
import torch

from apps.ai.exceptions import ConfigurationError, ShapeError
from apps.ai.networks import (
    Architecture,
    ArchitectureMismatch,
    FeedForwardNetwork,
    WEIGHT_LIMIT,
    check_architecture,
    default_architecture,
)


class TestArchitecture:
    """Tests for Architecture."""

    def test_default_tag(self):
        """Test the default topology."""
        arch = default_architecture()
        assert arch.tag == '9-13-8'
        assert arch.layer_sizes == [9, 13, 8]

    def test_parameter_count(self):
        """Test parameter count for 9-13-8."""
        assert Architecture().parameter_count == 9 * 13 + 13 + 13 * 8 + 8

    def test_describe(self):
        assert Architecture(hidden_layers=(16, 8)).describe() == '9 → 16 → 8 → 8'

    def test_from_tag(self):
        """Test parsing a multi-layer tag."""
        arch = Architecture.from_tag('9-16-12-8')
        assert arch.hidden_layers == (16, 12)
        assert arch.output_nodes == 8

    def test_from_tag_malformed(self):
        with pytest.raises(ValueError, match="Malformed"):
            Architecture.from_tag('9-x-8')
        with pytest.raises(ValueError, match="at least 3 layers"):
            Architecture.from_tag('9-8')

    def test_validate_limits(self):
        """Test the 1-5 layer and 4-50 node limits."""
        Architecture(hidden_layers=(4, 50)).validate()
        with pytest.raises(ConfigurationError):
            Architecture(hidden_layers=()).validate()
        with pytest.raises(ConfigurationError):
            Architecture(hidden_layers=(8,) * 6).validate()
        with pytest.raises(ConfigurationError):
            Architecture(hidden_layers=(3,)).validate()

    def test_hidden_layers_from_list_are_hashable(self):
        arch = Architecture(hidden_layers=[13])
        assert arch == Architecture()
        assert hash(arch) == hash(Architecture())


class TestCheckArchitecture:
    """Tests for check_architecture."""

    def test_match_returns_none(self):
        assert check_architecture(Architecture(), Architecture()) is None

    def test_mismatch_is_data(self):
        """Test that a mismatch is returned, not raised."""
        found = Architecture(hidden_layers=(16, 8))
        mismatch = check_architecture(Architecture(), found)
        assert isinstance(mismatch, ArchitectureMismatch)
        assert mismatch.expected.tag == '9-13-8'
        assert mismatch.found.tag == '9-16-8-8'
        assert '9-16-8-8' in mismatch.message


class TestPredict:
    """Tests for FeedForwardNetwork.predict."""

    def test_output_shape_and_range(self, network):
        outputs = network.predict([0.1] * 9)
        assert len(outputs) == 8
        assert all(0.0 < value < 1.0 for value in outputs)

    def test_deterministic(self, network):
        """Test that predict is pure: same input, same output."""
        inputs = [0.3, -0.2, 1.0, 0.5, 0.14, 0.9, -1.0, 0.25, 0.6]
        assert network.predict(inputs) == network.predict(inputs)

    def test_zero_network_outputs_half(self, architecture):
        """Test that an all-zero network yields sigmoid(0)."""
        outputs = FeedForwardNetwork(architecture).predict([1.0] * 9)
        assert outputs == pytest.approx([0.5] * 8)

    def test_wrong_length_raises_shape_error(self, network):
        """Test that a bad input length fails without corrupting state."""
        inputs = [0.2] * 9
        before = network.predict(inputs)
        with pytest.raises(ShapeError) as excinfo:
            network.predict([0.2] * 8)
        assert excinfo.value.expected == 9
        assert excinfo.value.received == 8
        assert network.predict(inputs) == before

    def test_inputs_written_into_scratch_buffer(self, network, monkeypatch):
        """Test that predict fills the reused input buffer instead of building a tensor."""
        buffer = network._input
        monkeypatch.setattr(torch, 'as_tensor', None)
        network.predict([0.5] * 9)
        assert network._input is buffer
        assert buffer.tolist() == pytest.approx([0.5] * 9)

    def test_non_finite_inputs_are_sanitized(self, network):
        outputs = network.predict([float('nan'), float('inf')] + [0.0] * 7)
        assert all(value == value for value in outputs)

    def test_deep_network(self, deep_architecture, generator):
        net = FeedForwardNetwork.random(deep_architecture, generator=generator)
        assert len(net.predict([0.0] * 9)) == 8

    def test_hidden_layer_is_relu(self, architecture):
        """Test that negative hidden activations are cut to zero."""
        net = FeedForwardNetwork(architecture)
        net.weights[0].fill_(-1.0)
        net.weights[1].fill_(1.0)
        assert net.predict([1.0] * 9) == pytest.approx([0.5] * 8)


class TestPortableRecords:
    """Tests for to_portable / from_portable."""

    def test_round_trip_exact(self, network):
        """Test that every weight and bias survives a round trip."""
        restored = FeedForwardNetwork.from_portable(network.to_portable())
        assert restored.same_weights(network)

    def test_record_layout(self, network):
        record = network.to_portable()
        assert record['architectureTag'] == '9-13-8'
        assert len(record['layerWeights']) == 2
        assert len(record['layerWeights'][0]) == 9
        assert len(record['layerWeights'][0][0]) == 13
        assert len(record['biases']) == 13 + 8

    def test_deep_round_trip(self, deep_architecture, generator):
        net = FeedForwardNetwork.random(deep_architecture, generator=generator)
        restored = FeedForwardNetwork.from_portable(net.to_portable())
        assert restored.architecture == deep_architecture
        assert restored.same_weights(net)

    def test_legacy_record_without_tag(self, network):
        """Test records with inputWeights/outputWeights and no tag."""
        record = network.to_portable()
        legacy = {
            'inputWeights': record['layerWeights'][0],
            'outputWeights': record['layerWeights'][1],
            'biases': record['biases'],
        }
        restored = FeedForwardNetwork.from_portable(legacy)
        assert restored.architecture.tag == '9-13-8'
        assert restored.same_weights(network)

    def test_wrong_bias_count_raises(self, network):
        record = network.to_portable()
        record['biases'] = record['biases'][:-1]
        with pytest.raises(ValueError, match="biases"):
            FeedForwardNetwork.from_portable(record)

    def test_shape_mismatch_raises(self, network):
        record = network.to_portable()
        record['architectureTag'] = '9-14-8'
        with pytest.raises(ValueError):
            FeedForwardNetwork.from_portable(record)

    def test_not_a_dict_raises(self):
        with pytest.raises(ValueError, match="dictionary"):
            FeedForwardNetwork.from_portable(['weights'])


class TestNetworkHelpers:
    """Tests for clone, clip_ and friends."""

    def test_clone_is_independent(self, network):
        copy = network.clone()
        copy.weights[0][0, 0] += 1.0
        assert not copy.same_weights(network)

    def test_clip(self, network):
        network.weights[0].fill_(50.0)
        network.clip_()
        assert float(network.weights[0].max()) == WEIGHT_LIMIT

    def test_is_finite(self, network):
        assert network.is_finite()
        network.biases[0][0] = float('nan')
        assert not network.is_finite()

    def test_constructor_rejects_bad_shapes(self, architecture):
        with pytest.raises(ValueError, match="shape"):
            FeedForwardNetwork(
                architecture,
                weights=[torch.zeros(9, 12), torch.zeros(12, 8)],
            )

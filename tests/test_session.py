"""
test_session.py
~~~~~~~~~~~~~~~

Tests for TrainingSession: rebuilds, training steps and snapshots.
"""

import pytest

from neuralnet.config import NetworkConfig
from neuralnet.exceptions import ConfigurationError, DimensionMismatchError
from neuralnet.session import TrainingSession


@pytest.fixture
def session():
    """A small seeded session."""
    return TrainingSession(NetworkConfig(
        shape=[2, 3, 1],
        activation='Tanh',
        output_activation='Linear',
        learning_rate=0.05,
        seed=11
    ))


@pytest.mark.unit
class TestConfigure:
    """Test configuration changes."""

    def test_default_session(self):
        """Test that a session without config uses the defaults."""
        session = TrainingSession()
        assert session.network.shape == [30, 24, 22, 10]
        assert session.step == 0

    def test_rate_change_keeps_network(self, session):
        """Test that changing only rates keeps the trained network."""
        network = session.network
        session.train_example([0.5, 0.5], [1.0])

        rebuilt = session.configure(learning_rate=0.1, regularization_rate=0.01)

        assert rebuilt is False
        assert session.network is network
        assert session.step == 1
        assert session.config.learning_rate == 0.1

    def test_shape_change_rebuilds(self, session):
        """Test that a new shape replaces the network and resets progress."""
        session.train_example([0.5, 0.5], [1.0])
        session.record_loss(0.3, 0.4)
        old_network = session.network

        rebuilt = session.configure(shape=[2, 4, 4, 1])

        assert rebuilt is True
        assert session.network is not old_network
        assert session.network.shape == [2, 4, 4, 1]
        assert session.step == 0
        assert session.loss_history == []

    def test_invalid_change_keeps_state(self, session):
        """Test that a rejected change leaves config and network alone."""
        network = session.network
        with pytest.raises(ConfigurationError):
            session.configure(shape=[2])
        assert session.network is network
        assert session.config.shape == [2, 3, 1]

    def test_rebuild_with_seed_is_reproducible(self, session):
        """Test that rebuilding with the same seed restores the initial weights."""
        initial = [link.weight for link in session.network.links]
        session.train_example([1.0, -1.0], [0.5])
        session.rebuild()
        assert [link.weight for link in session.network.links] == initial


@pytest.mark.unit
class TestTrainingSteps:
    """Test the step methods."""

    def test_step_counter(self, session):
        """Test that each update advances the step counter."""
        session.forward_prop([0.1, 0.2])
        session.back_prop([0.0])
        assert session.update_weights() == 1
        assert session.train_example([0.1, 0.2], [0.0]) is not None
        assert session.step == 2

    def test_back_prop_returns_error(self, session):
        """Test that back_prop reports the error of the last forward pass."""
        output = session.forward_prop([0.3, -0.3])[0]
        error = session.back_prop([1.0])
        assert error == pytest.approx(0.5 * (output - 1.0) ** 2)

    def test_update_overrides(self, session):
        """Test that a zero learning rate override leaves weights alone."""
        weights = [link.weight for link in session.network.links]
        session.forward_prop([0.3, -0.3])
        session.back_prop([1.0])
        session.update_weights(learning_rate=0.0)
        assert [link.weight for link in session.network.links] == weights

    def test_train_example_reduces_error(self, session):
        """Test that repeating one example drives its error down."""
        first = session.train_example([0.5, -0.5], [0.8])
        for _ in range(200):
            last = session.train_example([0.5, -0.5], [0.8])
        assert last < first

    def test_train_batch(self, session):
        """Test that a batch makes one update and returns the mean error."""
        examples = [([0.0, 1.0], [1.0]), ([1.0, 0.0], [-1.0])]
        error = session.train_batch(examples)

        assert session.step == 1
        assert error >= 0
        assert all(link.num_accumulated_ders == 0 for link in session.network.links)

    def test_train_batch_validates_first(self, session):
        """Test that a bad example rejects the whole batch before training."""
        examples = [([0.0, 1.0], [1.0]), ([1.0], [-1.0])]
        with pytest.raises(DimensionMismatchError):
            session.train_batch(examples)
        assert session.step == 0
        assert all(node.num_accumulated_ders == 0 for node in session.network.nodes)

    def test_train_example_validates_first(self, session):
        """Test that a wrong-size target is rejected before the forward pass."""
        outputs = session.forward_prop([1.0, 0.0])
        with pytest.raises(DimensionMismatchError):
            session.train_example([5.0, 0.0], [1.0, 2.0])
        assert session.network.outputs() == outputs
        assert [node.output for node in session.network.input_layer] == [1.0, 0.0]
        assert session.step == 0

    def test_empty_batch(self, session):
        """Test that an empty batch is rejected."""
        with pytest.raises(ConfigurationError):
            session.train_batch([])

    def test_snapshot(self, session):
        """Test the snapshot contents."""
        session.train_example([0.5, 0.5], [1.0])
        session.record_loss(0.25, 0.5)

        snapshot = session.snapshot()

        assert snapshot['step'] == 1
        assert snapshot['loss_history'] == [{'training': 0.25, 'test': 0.5}]
        assert snapshot['config']['shape'] == [2, 3, 1]
        assert snapshot['dead_links'] == 0
        assert len(snapshot['network']['links']) == 9


@pytest.mark.integration
class TestL1Session:
    """Integration test of pruning through a session."""

    def test_strong_l1_prunes_links(self):
        """Test that strong L1 regularization kills links during training."""
        session = TrainingSession(NetworkConfig(
            shape=[2, 4, 1],
            regularization='L1',
            regularization_rate=5.0,
            learning_rate=0.1,
            seed=2
        ))
        for _ in range(20):
            session.train_example([1.0, -1.0], [0.2])

        snapshot = session.snapshot()
        assert snapshot['dead_links'] > 0
        dead = [link for link in snapshot['network']['links'] if link['is_dead']]
        assert all(link['weight'] == 0.0 for link in dead)

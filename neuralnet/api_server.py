"""
api_server.py
~~~~~~~~~~~~~

Flask-based JSON API exposing training sessions to a presentation layer.

This module provides endpoints for:
- Creating, reconfiguring and deleting networks
- Running single forward / backward / update steps
- Reading the full node and link graph for visualization

Networks live in memory only; nothing is written to disk. The caller
drives the training loop by calling the step endpoints.
"""

import os
import uuid
import logging
from typing import Any, Dict, List, Optional, Tuple

from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from neuralnet.config import NetworkConfig
from neuralnet.exceptions import ConfigurationError, DimensionMismatchError
from neuralnet.session import TrainingSession

# ============================================================================
# LOGGING SETUP
# ============================================================================

def configure_logging() -> None:
    """
    Set up logging based on environment.

    - In production: Show fewer logs (less noise) but keep important logs
    - In development: Show more detailed logs for debugging
    """
    log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    is_production = os.getenv('FLASK_ENV') == 'production'

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if is_production:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        logging.getLogger('neuralnet').setLevel(logging.INFO)


configure_logging()
logger = logging.getLogger(__name__)

# ============================================================================
# SESSION REGISTRY
# ============================================================================

# Sessions currently loaded in memory: {network_id: session}
active_sessions: Dict[str, TrainingSession] = {}


def _get_session(network_id: str) -> Optional[TrainingSession]:
    session = active_sessions.get(network_id)
    if session is None:
        logger.warning(f"Request for non-existent network: {network_id}")
    return session


def _not_found():
    return jsonify({'error': 'Network not found'}), 404


def _bad_request(e: Exception):
    return jsonify({'error': str(e)}), 400


def _json_body() -> Dict[str, Any]:
    """Return the JSON object sent with the request, or an empty dict."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Request body must be a JSON object")
    return data


def _float_list(data: Dict[str, Any], key: str) -> List[float]:
    """Read a list of numbers from a request body."""
    values = data.get(key)
    if not isinstance(values, list) or not all(
        isinstance(v, (int, float)) and not isinstance(v, bool) for v in values
    ):
        raise ConfigurationError(f"'{key}' must be a list of numbers")
    return [float(v) for v in values]


def _optional_rate(data: Dict[str, Any], key: str) -> Optional[float]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigurationError(f"'{key}' must be a non-negative number")
    return float(value)


# ============================================================================
# API ENDPOINTS
# ============================================================================

def register_routes(app: Flask) -> None:
    """Attach all endpoints to ``app``."""

    @app.errorhandler(ConfigurationError)
    @app.errorhandler(DimensionMismatchError)
    def handle_invalid_request(e):
        logger.warning(f"Rejected request to {request.path}: {e}")
        return _bad_request(e)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return e
        logger.exception(f"Unexpected error handling {request.path}: {e}")
        return jsonify({'error': 'Internal server error'}), 500

    @app.route('/api/status', methods=['GET'])
    def get_status():
        """Return server status and the number of networks in memory."""
        return jsonify({
            'status': 'online',
            'active_networks': len(active_sessions)
        }), 200

    @app.route('/api/networks', methods=['POST'])
    def create_network():
        """
        Create a new network.

        Request body (all optional, defaults from NetworkConfig):
            {
                'shape': [2, 4, 1],
                'activation': 'Tanh',
                'output_activation': 'Linear',
                'regularization': 'L1',
                'regularization_rate': 0.001,
                'learning_rate': 0.03
            }

        Returns:
            JSON with network_id and the resolved config
        """
        data = _json_body()
        config = NetworkConfig.from_dict(data)

        network_id = str(uuid.uuid4())
        session = TrainingSession(config)
        active_sessions[network_id] = session

        logger.info(f"Created network {network_id} with shape {config.shape}")

        return jsonify({
            'network_id': network_id,
            'config': config.to_dict(),
            'status': 'created'
        }), 201

    @app.route('/api/networks', methods=['GET'])
    def list_networks():
        """List the networks in memory."""
        networks = [
            {
                'network_id': network_id,
                'shape': session.config.shape,
                'step': session.step
            }
            for network_id, session in active_sessions.items()
        ]
        return jsonify({'networks': networks}), 200

    @app.route('/api/networks/<network_id>', methods=['GET'])
    def get_network(network_id: str):
        """Return the config, progress and full node/link graph of a network."""
        session = _get_session(network_id)
        if session is None:
            return _not_found()
        return jsonify(session.snapshot()), 200

    @app.route('/api/networks/<network_id>', methods=['PATCH'])
    def configure_network(network_id: str):
        """
        Change configuration parameters.

        The network is rebuilt when the shape or any other construction
        parameter changes; changing only the rates keeps the trained weights.
        """
        session = _get_session(network_id)
        if session is None:
            return _not_found()

        data = _json_body()
        changes = NetworkConfig.normalize_keys(data)
        rebuilt = session.configure(**changes)

        return jsonify({
            'network_id': network_id,
            'rebuilt': rebuilt,
            'config': session.config.to_dict(),
            'step': session.step
        }), 200

    @app.route('/api/networks/<network_id>/forward', methods=['POST'])
    def forward(network_id: str):
        """Request body: {'inputs': [...]}."""
        session = _get_session(network_id)
        if session is None:
            return _not_found()

        data = _json_body()
        outputs = session.forward_prop(_float_list(data, 'inputs'))
        return jsonify({'outputs': outputs}), 200

    @app.route('/api/networks/<network_id>/backward', methods=['POST'])
    def backward(network_id: str):
        """Request body: {'targets': [...]}. Returns the error of the last forward pass."""
        session = _get_session(network_id)
        if session is None:
            return _not_found()

        data = _json_body()
        error = session.back_prop(_float_list(data, 'targets'))
        return jsonify({'error': error}), 200

    @app.route('/api/networks/<network_id>/update', methods=['POST'])
    def update(network_id: str):
        """
        Apply accumulated derivatives.

        Request body (optional): {'learning_rate': 0.1, 'regularization_rate': 0.0}
        overrides the configured rates for this step only.
        """
        session = _get_session(network_id)
        if session is None:
            return _not_found()

        data = _json_body()
        step = session.update_weights(
            _optional_rate(data, 'learning_rate'),
            _optional_rate(data, 'regularization_rate')
        )
        return jsonify({
            'step': step,
            'dead_links': session.network.num_dead_links()
        }), 200

    @app.route('/api/networks/<network_id>/train', methods=['POST'])
    def train(network_id: str):
        """Request body: {'inputs': [...], 'targets': [...]}. One full training step."""
        session = _get_session(network_id)
        if session is None:
            return _not_found()

        data = _json_body()
        inputs = _float_list(data, 'inputs')
        targets = _float_list(data, 'targets')
        error = session.train_example(inputs, targets)

        return jsonify({
            'outputs': session.network.outputs(),
            'error': error,
            'step': session.step
        }), 200

    @app.route('/api/networks/<network_id>/loss', methods=['POST'])
    def record_loss(network_id: str):
        """Request body: {'training': 0.2, 'test': 0.3}. Appends to the loss history."""
        session = _get_session(network_id)
        if session is None:
            return _not_found()

        data = _json_body()
        training, test = _loss_pair(data)
        session.record_loss(training, test)
        return jsonify({'loss_history': session.loss_history}), 200

    @app.route('/api/networks/<network_id>', methods=['DELETE'])
    def delete_network(network_id: str):
        """Delete a network from memory."""
        if active_sessions.pop(network_id, None) is None:
            logger.warning(f"Delete attempted for non-existent network: {network_id}")
            return _not_found()

        logger.info(f"Deleted network {network_id}")
        return jsonify({'network_id': network_id, 'deleted': True}), 200

    @app.route('/api/networks', methods=['DELETE'])
    def delete_all_networks():
        """Delete every network in memory."""
        deleted_count = len(active_sessions)
        active_sessions.clear()

        logger.info(f"Deleted all networks: {deleted_count} total")
        return jsonify({
            'deleted_count': deleted_count,
            'message': f'Successfully deleted {deleted_count} network(s)'
        }), 200


def _loss_pair(data: Dict[str, Any]) -> Tuple[float, float]:
    values = []
    for key in ('training', 'test'):
        value = data.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(f"'{key}' must be a number")
        values.append(float(value))
    return values[0], values[1]


# ============================================================================
# FLASK APP SETUP
# ============================================================================

def create_app() -> Flask:
    """Create the Flask app with CORS enabled for any origin."""
    app = Flask(__name__)
    CORS(app, resources={r"/*": {"origins": "*"}})
    register_routes(app)
    return app


app = create_app()


if __name__ == "__main__":
    port = int(os.getenv('PORT', 5000))
    logger.info(f"Starting API server on port {port}")
    app.run(host='0.0.0.0', port=port, debug=os.getenv('FLASK_ENV') != 'production')

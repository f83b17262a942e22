"""
Quai Chain Switcher - Main Application
"""
import logging
import math
from flask import Blueprint, Flask, current_app, jsonify, request

import config
from difficulty import DifficultyTracker
from miner_config import MinerConfigStore
from process import create_controller
from rpc import NodeRPCClient
from switcher import ChainSwitcher

logger = logging.getLogger(__name__)

api = Blueprint('auto_switch', __name__)


def get_switcher() -> ChainSwitcher:
    return current_app.extensions['chain_switcher']


def _hours_arg() -> float:
    hours = request.args.get('hours', 24, type=float)
    if hours is None or not math.isfinite(hours) or hours <= 0:
        raise ValueError("hours must be a positive number")
    return hours


# Auto-switch Routes

@api.route('/api/auto-switch/status', methods=['GET'])
def auto_switch_status():
    """Get switcher status"""
    return jsonify({
        'success': True,
        'status': get_switcher().get_status()
    })


@api.route('/api/auto-switch/start', methods=['POST'])
def auto_switch_start():
    """Enable automatic chain switching"""
    switcher = get_switcher()
    switcher.start()
    return jsonify({
        'success': True,
        'message': 'Auto chain switching started'
    })


@api.route('/api/auto-switch/stop', methods=['POST'])
def auto_switch_stop():
    """Disable automatic chain switching"""
    get_switcher().stop()
    return jsonify({
        'success': True,
        'message': 'Auto chain switching stopped'
    })


@api.route('/api/auto-switch/check', methods=['POST'])
def auto_switch_check():
    """Run one switch check now"""
    try:
        record = get_switcher().check_and_switch()
        return jsonify({
            'success': True,
            'switched': record is not None,
            'switch': record.to_dict() if record else None
        })
    except Exception as e:
        logger.error(f"Switch check error: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@api.route('/api/auto-switch/switch', methods=['POST'])
def auto_switch_manual():
    """Force the miner onto a specific chain"""
    data = request.get_json(silent=True) or {}
    chain = data.get('chain')
    switcher = get_switcher()

    if not chain:
        return jsonify({
            'success': False,
            'error': 'Missing chain'
        }), 400
    if chain not in switcher.tracker.chains:
        return jsonify({
            'success': False,
            'error': f'Unknown chain: {chain}'
        }), 404

    try:
        record = switcher.switch_to_chain(chain, reason=data.get('reason') or 'manual switch')
        return jsonify({
            'success': True,
            'switch': record.to_dict()
        })
    except Exception as e:
        logger.error(f"Manual switch error: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@api.route('/api/auto-switch/sharding/enable', methods=['POST'])
def sharding_enable():
    """Enable zone sharding"""
    data = request.get_json(silent=True) or {}
    zones = data.get('zones') or []
    try:
        get_switcher().enable_sharding(zones)
        return jsonify({
            'success': True,
            'zones': get_switcher().zone_preferences
        })
    except ValueError as e:
        return jsonify({
            'success': False,
            'error': str(e)
        }), 400


@api.route('/api/auto-switch/sharding/disable', methods=['POST'])
def sharding_disable():
    """Disable zone sharding"""
    get_switcher().disable_sharding()
    return jsonify({
        'success': True,
        'message': 'Zone sharding disabled'
    })


@api.route('/api/auto-switch/threshold', methods=['POST'])
def set_threshold():
    """Set minimum profitability improvement required to switch"""
    data = request.get_json(silent=True) or {}
    if data.get('threshold') is None:
        return jsonify({
            'success': False,
            'error': 'Missing threshold'
        }), 400
    try:
        threshold = get_switcher().set_threshold(data['threshold'])
        return jsonify({
            'success': True,
            'threshold': threshold
        })
    except (TypeError, ValueError) as e:
        return jsonify({
            'success': False,
            'error': str(e)
        }), 400


@api.route('/api/auto-switch/rewards', methods=['POST'])
def update_rewards():
    """Merge per-chain block rewards"""
    data = request.get_json(silent=True) or {}
    rewards = data.get('rewards')
    if not isinstance(rewards, dict) or not rewards:
        return jsonify({
            'success': False,
            'error': 'Missing rewards'
        }), 400
    try:
        updated = get_switcher().update_block_rewards(rewards)
        return jsonify({
            'success': True,
            'rewards': updated
        })
    except (TypeError, ValueError) as e:
        return jsonify({
            'success': False,
            'error': str(e)
        }), 400


# Difficulty Routes

@api.route('/api/difficulty', methods=['GET'])
def get_difficulties():
    """Current difficulty for every chain"""
    return jsonify({
        'success': True,
        'difficulties': get_switcher().tracker.get_all_difficulties()
    })


@api.route('/api/difficulty/history', methods=['GET'])
def get_difficulty_history():
    """Difficulty history within the last N hours"""
    try:
        hours = _hours_arg()
    except ValueError as e:
        return jsonify({
            'success': False,
            'error': str(e)
        }), 400

    history = get_switcher().tracker.get_history(hours)
    return jsonify({
        'success': True,
        'hours': hours,
        'history': [entry.to_dict() for entry in history]
    })


@api.route('/api/difficulty/trends', methods=['GET'])
def get_difficulty_trends():
    """Difficulty trends within the last N hours"""
    try:
        hours = _hours_arg()
    except ValueError as e:
        return jsonify({
            'success': False,
            'error': str(e)
        }), 400

    trends = get_switcher().tracker.get_all_trends(hours)
    return jsonify({
        'success': True,
        'hours': hours,
        'trends': {chain: trend.to_dict() for chain, trend in trends.items()}
    })


def build_switcher() -> ChainSwitcher:
    """Wire the switcher from config"""
    tracker = DifficultyTracker(NodeRPCClient())
    return ChainSwitcher(
        tracker,
        MinerConfigStore(),
        create_controller()
    )


def create_app(switcher: ChainSwitcher = None) -> Flask:
    """Flask app exposing the switcher to the dashboard"""
    app = Flask(__name__)
    app.extensions['chain_switcher'] = switcher or build_switcher()
    app.register_blueprint(api)
    return app


def main():
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger.info("Starting Quai Chain Switcher")

    app = create_app()
    switcher = app.extensions['chain_switcher']
    if config.AUTO_SWITCH_ENABLED:
        switcher.start()

    try:
        app.run(
            host=config.FLASK_HOST,
            port=config.FLASK_PORT,
            debug=config.DEBUG,
            use_reloader=False
        )
    finally:
        switcher.stop()


if __name__ == '__main__':
    main()

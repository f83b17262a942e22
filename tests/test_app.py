"""
Unit tests for the HTTP API
"""
import unittest
import os
import sys
import shutil
import tempfile

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import create_app
from difficulty import DifficultyTracker
from miner_config import MinerConfigStore
from switcher import ChainSwitcher
from tests.fakes import FakeRPCClient, FakeController

CHAINS = ['Prime', 'Cyprus', 'Paxos', 'Hydra', 'Zone-0', 'Zone-1']


class TestAutoSwitchAPI(unittest.TestCase):
    """Test auto-switch and difficulty routes"""

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.rpc = FakeRPCClient({'Prime': 100, 'Cyprus': 40})
        self.switcher = ChainSwitcher(
            DifficultyTracker(self.rpc, chains=CHAINS),
            MinerConfigStore(os.path.join(self.tmp_dir, 'config.json')),
            FakeController(),
            check_interval=3600
        )
        self.client = create_app(self.switcher).test_client()

    def tearDown(self):
        self.switcher.stop()
        shutil.rmtree(self.tmp_dir)

    def test_status(self):
        response = self.client.get('/api/auto-switch/status')

        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertTrue(data['success'])
        self.assertFalse(data['status']['enabled'])
        self.assertIsNone(data['status']['current_chain'])

    def test_check_switches(self):
        response = self.client.post('/api/auto-switch/check')

        data = response.get_json()
        self.assertTrue(data['switched'])
        self.assertEqual(data['switch']['chain'], 'Cyprus')

        data = self.client.post('/api/auto-switch/check').get_json()
        self.assertFalse(data['switched'])

    def test_check_config_failure(self):
        blocker = os.path.join(self.tmp_dir, 'file')
        open(blocker, 'w').close()
        self.switcher.config_store = MinerConfigStore(os.path.join(blocker, 'config.json'))

        response = self.client.post('/api/auto-switch/check')

        self.assertEqual(response.status_code, 500)
        self.assertFalse(response.get_json()['success'])

    def test_manual_switch(self):
        response = self.client.post('/api/auto-switch/switch', json={'chain': 'Hydra'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.switcher.current_chain, 'Hydra')
        self.assertEqual(response.get_json()['switch']['reason'], 'manual switch')

    def test_manual_switch_unknown_chain(self):
        response = self.client.post('/api/auto-switch/switch', json={'chain': 'Zone-9'})
        self.assertEqual(response.status_code, 404)

        response = self.client.post('/api/auto-switch/switch', json={})
        self.assertEqual(response.status_code, 400)

    def test_start_stop(self):
        self.assertEqual(self.client.post('/api/auto-switch/start').status_code, 200)
        self.assertTrue(self.switcher.enabled)

        self.assertEqual(self.client.post('/api/auto-switch/stop').status_code, 200)
        self.assertFalse(self.switcher.enabled)

    def test_sharding(self):
        response = self.client.post('/api/auto-switch/sharding/enable', json={'zones': ['Zone-0', 'Zone-2']})

        self.assertEqual(response.get_json()['zones'], ['Zone-0', 'Zone-2'])
        self.assertTrue(self.switcher.sharding_enabled)

        response = self.client.post('/api/auto-switch/sharding/enable', json={'zones': ['Prime']})
        self.assertEqual(response.status_code, 400)

        self.client.post('/api/auto-switch/sharding/disable')
        self.assertFalse(self.switcher.sharding_enabled)

    def test_threshold(self):
        response = self.client.post('/api/auto-switch/threshold', json={'threshold': 2})
        self.assertEqual(response.get_json()['threshold'], 1.0)

        response = self.client.post('/api/auto-switch/threshold', json={})
        self.assertEqual(response.status_code, 400)

        response = self.client.post('/api/auto-switch/threshold', json={'threshold': 'high'})
        self.assertEqual(response.status_code, 400)

    def test_rewards(self):
        response = self.client.post('/api/auto-switch/rewards', json={'rewards': {'Paxos': 1.2}})

        self.assertEqual(response.get_json()['rewards']['Paxos'], 1.2)
        self.assertEqual(response.get_json()['rewards']['Prime'], 1.0)

        response = self.client.post('/api/auto-switch/rewards', json={'rewards': {'Paxos': -1}})
        self.assertEqual(response.status_code, 400)

    def test_difficulty_routes(self):
        self.switcher.tracker.update_difficulties()
        self.switcher.tracker.update_difficulties()

        data = self.client.get('/api/difficulty').get_json()
        self.assertEqual(data['difficulties']['Regions']['Cyprus'], 40)

        data = self.client.get('/api/difficulty/history?hours=1').get_json()
        self.assertEqual(len(data['history']), 2)
        self.assertEqual(data['history'][0]['difficulties']['Prime'], 100)

        data = self.client.get('/api/difficulty/trends').get_json()
        self.assertEqual(data['trends']['Prime']['trend'], 'stable')
        self.assertEqual(data['trends']['Prime']['change_percent'], 0.0)

        response = self.client.get('/api/difficulty/history?hours=-1')
        self.assertEqual(response.status_code, 400)

    def test_non_finite_hours_rejected(self):
        for hours in ('nan', 'inf', '-inf'):
            response = self.client.get(f'/api/difficulty/trends?hours={hours}')
            self.assertEqual(response.status_code, 400, hours)
            response = self.client.get(f'/api/difficulty/history?hours={hours}')
            self.assertEqual(response.status_code, 400, hours)

    def test_huge_hours_returns_all_history(self):
        self.switcher.tracker.update_difficulties()

        response = self.client.get('/api/difficulty/history?hours=1e15')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.get_json()['history']), 1)


if __name__ == '__main__':
    unittest.main()

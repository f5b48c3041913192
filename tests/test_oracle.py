import asyncio
import unittest

from aiohttp import web
from aiohttp.test_utils import TestServer as ProofServer

from focilchain import (
    ElectionRecord,
    ElectionResult,
    LocalElectionOracle,
    RemoteElectionOracle,
    apply_home_override,
    create_oracle,
    modulo_elects,
)
from focilchain.config import ELECTION_POLICY_MODULO

SAMPLES = 10_000


def sample_addresses(n=SAMPLES):
    return [f"0x{i:040x}" for i in range(n)]


class TestLocalOracle(unittest.TestCase):
    def setUp(self):
        self.oracle = LocalElectionOracle()

    def test_record_ranges(self):
        for address in sample_addresses(200):
            result = self.oracle.evaluate(address, nonce=1700000000)
            record = result.record
            self.assertGreaterEqual(record.eligibility_score, 0.0)
            self.assertLessEqual(record.eligibility_score, 0.99)
            self.assertEqual(record.threshold, 0.3)
            self.assertGreaterEqual(record.validator_weight, 1.0)
            self.assertLessEqual(record.validator_weight, 1.9)
            self.assertEqual(record.timestamp, 1700000000)
            self.assertEqual(result.elected, record.eligibility_score > record.threshold)
            self.assertTrue(result.proof.startswith("mock-zk-proof-"))

    def test_same_address_and_nonce_reproducible(self):
        first = self.oracle.evaluate("0xabc", nonce=42)
        second = self.oracle.evaluate("0xabc", nonce=42)
        self.assertEqual(first.to_dict(), second.to_dict())

        later = self.oracle.evaluate("0xabc", nonce=43)
        self.assertNotEqual(first.proof, later.proof)
        self.assertEqual(first.elected, later.elected)

    def test_modulo_path_deterministic(self):
        for address in sample_addresses(100):
            self.assertEqual(modulo_elects(address), modulo_elects(address))

    def test_score_path_rate(self):
        elected = sum(1 for a in sample_addresses() if self.oracle.evaluate(a, nonce=1).elected)
        self.assertAlmostEqual(elected / SAMPLES, 0.70, delta=0.05)

    def test_modulo_path_rate(self):
        elected = sum(1 for a in sample_addresses() if modulo_elects(a))
        self.assertAlmostEqual(elected / SAMPLES, 5 / 7, delta=0.05)

    def test_modulo_policy(self):
        oracle = LocalElectionOracle(policy=ELECTION_POLICY_MODULO)
        for address in sample_addresses(100):
            self.assertEqual(oracle.evaluate(address, nonce=1).elected, modulo_elects(address))

    def test_unknown_policy(self):
        with self.assertRaises(ValueError):
            LocalElectionOracle(policy="stake")

    def test_home_override_nudges_score(self):
        record = ElectionRecord(0.1, 0.3, 1.5, "0x00", 1)
        result = apply_home_override(ElectionResult("p", False, record))

        self.assertTrue(result.elected)
        self.assertAlmostEqual(result.record.eligibility_score, 0.4)

    def test_home_override_score_capped(self):
        record = ElectionRecord(0.5, 0.95, 1.5, "0x00", 1)
        result = apply_home_override(ElectionResult("p", False, record))

        self.assertTrue(result.elected)
        self.assertEqual(result.record.eligibility_score, 1.0)

    def test_home_override_keeps_higher_score(self):
        record = ElectionRecord(0.9, 0.3, 1.5, "0x00", 1)
        result = apply_home_override(ElectionResult("p", True, record))
        self.assertEqual(result.record.eligibility_score, 0.9)

    def test_create_oracle_without_url_is_local(self):
        self.assertIsInstance(create_oracle(), LocalElectionOracle)
        self.assertIsInstance(create_oracle("http://localhost:3001"), RemoteElectionOracle)


class TestRemoteOracle(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.requests = []
        self.response = {
            "proof": "remote-proof",
            "elected": False,
            "privateData": {
                "randomness": "0x1234",
                "threshold": 0.3,
                "eligibilityScore": 0.12,
                "validatorWeight": 1.4,
                "timestamp": 1700000000,
            },
        }
        self.status = 200
        self.hang = False
        self.release = asyncio.Event()

        async def zk_proof(request):
            self.requests.append(request.query.get("address"))
            if self.hang:
                await self.release.wait()
            if self.status != 200:
                return web.Response(status=self.status)
            return web.json_response(self.response)

        app = web.Application()
        app.router.add_get("/zk-proof", zk_proof)
        self.server = ProofServer(app)
        await self.server.start_server()
        self.url = f"http://{self.server.host}:{self.server.port}"

    async def asyncTearDown(self):
        self.release.set()
        await self.server.close()

    async def test_remote_answer_used(self):
        oracle = RemoteElectionOracle(self.url)
        result = await oracle.request_proof("0xabc")

        self.assertEqual(self.requests, ["0xabc"])
        self.assertEqual(result.proof, "remote-proof")
        self.assertFalse(result.elected)
        self.assertEqual(result.record.eligibility_score, 0.12)
        self.assertEqual(result.record.validator_weight, 1.4)

    async def test_remote_answer_ignores_local_threshold(self):
        oracle = RemoteElectionOracle(self.url, fallback=LocalElectionOracle(threshold=0.0))
        result = await oracle.request_proof("0xabc")

        self.assertFalse(result.elected)
        self.assertEqual(result.record.threshold, 0.3)

    async def test_http_error_falls_back(self):
        self.status = 503
        oracle = RemoteElectionOracle(self.url)
        result = await oracle.request_proof("0xabc", nonce=5)

        expected = LocalElectionOracle().evaluate("0xabc", nonce=5)
        self.assertEqual(result.to_dict(), expected.to_dict())

    async def test_malformed_payload_falls_back(self):
        self.response = {"elected": "yes"}
        oracle = RemoteElectionOracle(self.url)
        result = await oracle.request_proof("0xabc", nonce=5)
        self.assertTrue(result.proof.startswith("mock-zk-proof-"))

    async def test_slow_service_falls_back(self):
        self.hang = True
        oracle = RemoteElectionOracle(self.url, timeout=0.2)
        result = await oracle.request_proof("0xabc", nonce=5)

        self.assertEqual(self.requests, ["0xabc"])
        expected = LocalElectionOracle().evaluate("0xabc", nonce=5)
        self.assertEqual(result.to_dict(), expected.to_dict())

    async def test_unreachable_falls_back(self):
        await self.server.close()
        oracle = RemoteElectionOracle(self.url, timeout=1.0)
        result = await oracle.request_proof("0xabc", nonce=5)
        self.assertTrue(result.proof.startswith("mock-zk-proof-"))
        self.assertIsNotNone(result.record)


if __name__ == '__main__':
    unittest.main()

import unittest

from focilchain import (
    Blockchain,
    InclusionListAssembler,
    InsufficientPool,
    LocalElectionOracle,
    Mempool,
    generate_identities,
    generate_random_transactions,
)


class TestInclusionListAssembler(unittest.TestCase):
    def setUp(self):
        self.addresses = generate_identities(10)
        self.assembler = InclusionListAssembler()

    def _pool(self, size):
        return Mempool(generate_random_transactions(self.addresses, size))

    def test_home_policy_any_pool_size(self):
        for size in (0, 2, 4, 9, 100):
            with self.subTest(pool_size=size):
                pool = self._pool(size)
                txs = self.assembler.assemble(pool, self.addresses, True).transactions

                self.assertEqual(len(txs), 10)
                self.assertEqual([tx.included_by_validator for tx in txs], [True] * 4 + [False] * 6)
                self.assertEqual(pool.size(), max(0, size - 10))
                self.assertEqual(len({tx.id for tx in txs}), 10)

    def test_other_policy_any_pool_size(self):
        for size in (0, 2, 4, 9, 100):
            with self.subTest(pool_size=size):
                pool = self._pool(size)
                txs = self.assembler.assemble(pool, self.addresses, False).transactions

                self.assertEqual(len(txs), 10)
                self.assertFalse(any(tx.included_by_validator for tx in txs))
                self.assertEqual(pool.size(), max(0, size - 10))

    def test_home_policy_takes_pool_front_first(self):
        pending = generate_random_transactions(self.addresses, 7)
        pool = Mempool(pending)
        inclusion = self.assembler.assemble(pool, self.addresses, True)

        self.assertEqual([tx.id for tx in inclusion.tagged], [tx.id for tx in pending[:4]])
        self.assertEqual([tx.id for tx in inclusion.untagged[:3]], [tx.id for tx in pending[4:]])
        self.assertEqual(inclusion.synthesized_tagged, 0)
        self.assertEqual(inclusion.synthesized_untagged, 3)

    def test_selected_transactions_leave_pool(self):
        pool = self._pool(30)
        inclusion = self.assembler.assemble(pool, self.addresses, True)
        for tx in inclusion.transactions:
            self.assertFalse(pool.contains(tx))

    def test_insufficient_pool_without_synthesis(self):
        pool = self._pool(3)
        with self.assertRaises(InsufficientPool):
            self.assembler.assemble(pool, [], False)
        # Dequeued transactions are consumed even though assembly failed
        self.assertEqual(pool.size(), 0)

    def test_short_synthesizer(self):
        pool = self._pool(0)
        with self.assertRaises(InsufficientPool):
            self.assembler.assemble(pool, self.addresses, False, synthesize=lambda n: [])

    def test_invalid_sizes(self):
        with self.assertRaises(ValueError):
            InclusionListAssembler(per_block=3, home_tagged=4)


class TestProductionScenario(unittest.TestCase):
    """Genesis, one home block and one regular block over 50 identities."""

    def test_scenario(self):
        addresses = generate_identities(50)
        chain = Blockchain(addresses[0])
        pool = Mempool(generate_random_transactions(addresses, 15))
        assembler = InclusionListAssembler()
        oracle = LocalElectionOracle()

        genesis = chain.last_block
        self.assertEqual(genesis.index, 0)
        self.assertEqual(len(genesis.transactions), 0)

        # Home validator with 15 pending
        home = oracle.evaluate(addresses[1], nonce=1)
        inclusion = assembler.assemble(pool, addresses, True)
        block1 = chain.append(1, inclusion.transactions, chain.last_block.hash, addresses[1], home.proof, home.record)

        self.assertEqual(len(block1.transactions), 10)
        self.assertEqual(block1.tagged_count, 4)
        self.assertEqual(pool.size(), 5)

        # Another validator with 5 pending
        remaining = pool.get_pending_transactions()
        other = oracle.evaluate(addresses[2], nonce=2)
        inclusion = assembler.assemble(pool, addresses, False)
        block2 = chain.append(2, inclusion.transactions, chain.last_block.hash, addresses[2], other.proof, other.record)

        self.assertEqual(len(block2.transactions), 10)
        self.assertEqual(block2.tagged_count, 0)
        self.assertEqual([tx.id for tx in block2.transactions[:5]], [tx.id for tx in remaining])
        self.assertEqual(inclusion.synthesized_untagged, 5)
        self.assertEqual(pool.size(), 0)

        self.assertEqual(block2.previous_hash, block1.hash)
        self.assertEqual(block1.previous_hash, genesis.hash)
        self.assertTrue(chain.validate_chain())

        ids = [tx.id for block in chain.chain for tx in block.transactions]
        self.assertEqual(len(ids), len(set(ids)))


if __name__ == '__main__':
    unittest.main()

import unittest

from tapegrad.infrastructure._config import EngineConfig
from tapegrad.infrastructure.graph._arena import GraphArena
from tapegrad.infrastructure.graph._scheduler import TopologicalScheduler
from tapegrad.infrastructure.graph._tape import TapeBuilder


class TestTopologicalScheduler(unittest.TestCase):
    def setUp(self):
        self.arena = GraphArena()
        tape = TapeBuilder(self.arena, EngineConfig())
        # 0: x (grad), 1: c (const), 2: unused (grad)
        self.x = tape.record_leaf([1.0, 2.0], requires_grad=True)
        self.c = tape.record_leaf([3.0, 4.0], requires_grad=False)
        self.unused = tape.record_leaf([5.0, 6.0], requires_grad=True)
        # 3: x*c, 4: exp(c) (no grad), 5: 3 + 4, 6: sum(5), 7: exp(unused)
        self.xc = tape.record("multiply", [self.x, self.c])
        self.ec = tape.record("exp", [self.c])
        self.s = tape.record("add", [self.xc, self.ec])
        self.out = tape.record("sum", [self.s])
        self.side = tape.record("exp", [self.unused])
        self.sched = TopologicalScheduler(self.arena)

    def test_forward_order_is_increasing_over_ancestors(self):
        self.assertEqual(self.sched.forward_order([self.out.node_id]), [0, 1, 3, 4, 5, 6])

    def test_backward_order_is_decreasing_and_grad_only(self):
        order = self.sched.backward_order([self.out.node_id])
        self.assertEqual(order, [6, 5, 3, 0])
        self.assertNotIn(self.unused.node_id, order)
        self.assertNotIn(self.side.node_id, order)
        self.assertNotIn(self.c.node_id, order)

    def test_backward_from_non_grad_node_is_empty(self):
        self.assertEqual(self.sched.backward_order([self.ec.node_id]), [])

    def test_multiple_targets(self):
        order = self.sched.backward_order([self.out.node_id, self.side.node_id])
        self.assertEqual(order, [7, 6, 5, 3, 2, 0])

    def test_deep_chain_does_not_recurse(self):
        arena = GraphArena()
        tape = TapeBuilder(arena, EngineConfig())
        h = tape.record_leaf([0.0], requires_grad=True)
        for _ in range(5000):
            h = tape.record("negate", [h])
        order = TopologicalScheduler(arena).backward_order([h.node_id])
        self.assertEqual(len(order), 5001)
        self.assertEqual(order[0], 5000)
        self.assertEqual(order[-1], 0)


if __name__ == "__main__":
    unittest.main()

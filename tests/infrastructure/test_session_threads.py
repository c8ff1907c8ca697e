import unittest
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from tapegrad import Session


def _grad_of_cubic_sum(start):
    sess = Session()
    xv = np.linspace(start, start + 1.0, 8)
    x = sess.new_variable(xv, requires_grad=True)
    for _ in range(20):
        y = sess.apply("sum", [sess.apply("power", [x], exponent=3)])
        grads = sess.backward(y)
    return xv, grads.gradient_of(x).to_numpy()


class TestIndependentSessions(unittest.TestCase):
    def test_sessions_in_threads_do_not_interfere(self):
        starts = [float(i) for i in range(16)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(_grad_of_cubic_sum, starts))

        for xv, g in results:
            self.assertTrue(np.allclose(g, 3 * xv**2))

    def test_one_session_shared_across_threads(self):
        sess = Session()
        x = sess.new_variable([1.0, 2.0], requires_grad=True)

        def work(_):
            y = sess.apply("sum", [sess.apply("square", [x])])
            return sess.backward(y).gradient_of(x).to_numpy()

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(work, range(32)))

        for g in results:
            self.assertTrue(np.array_equal(g, [2.0, 4.0]))
        self.assertEqual(len(sess), 1 + 2 * 32)


if __name__ == "__main__":
    unittest.main()

import sys
import logging
import io
import datetime
import pathlib

import numpy as np
import pytest

if sys.version_info < (3, 8):
    pytest.exit("Python >= 3.8 is required to run tests. Current version: {}".format(sys.version.replace("\n", " ")))

from dtmesh import DelaunayTriangulation


LOG_DIR = pathlib.Path(__file__).parent / "test-logs"


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    # Attach the TestReport to the item so fixtures can see the outcome in teardown.
    outcome = yield
    rep = outcome.get_result()
    setattr(item, "rep_" + rep.when, rep)


@pytest.fixture(autouse=True)
def capture_test_logs(request):
    """Capture logging for each test into an in-memory buffer and write it to
    a file only when the test fails.
    """
    root = logging.getLogger()
    prev_handlers = list(root.handlers)
    for h in prev_handlers:
        root.removeHandler(h)

    buf = io.StringIO()
    handler = logging.StreamHandler(buf)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)
    prev_level = root.level
    root.setLevel(logging.DEBUG)

    try:
        yield
    finally:
        root.removeHandler(handler)
        root.setLevel(prev_level)
        for h in prev_handlers:
            root.addHandler(h)

        rep = getattr(request.node, "rep_call", None)
        if rep is not None and getattr(rep, "outcome", None) == "failed":
            nodeid = request.node.nodeid.replace("::", "__").replace("/", "_")
            ts = datetime.datetime.now().strftime("%Y%m%dT%H%M%S")
            try:
                LOG_DIR.mkdir(exist_ok=True)
                with open(LOG_DIR / "{}__{}.log".format(nodeid, ts), "w", encoding="utf-8") as f:
                    f.write("=== Test: {}\n".format(request.node.nodeid))
                    f.write("=== Timestamp: {}\n\n".format(ts))
                    f.write(buf.getvalue())
            except OSError:
                # never fail teardown over a log file
                pass


@pytest.fixture
def square_example():
    """The four-point example on the [0,10]^2 box, already inserted."""
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    tri.insert([(5, 5, 0), (1, 1, 0), (9, 1, 0), (5, 9, 0)])
    return tri


@pytest.fixture
def random_points():
    return np.random.RandomState(0).rand(200, 2) * 100.0

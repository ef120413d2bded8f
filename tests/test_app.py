import inspect

import app


def test_cached_analysis_is_keyed_on_the_current_day() -> None:
    params = inspect.signature(app._cached_analysis).parameters
    assert "today" in params

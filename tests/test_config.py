import pytest

from reflectscan.config import ScanConfig
from reflectscan.errors import ConfigError


def _cfg(**kw):
    base = dict(paths_file="paths.txt", parameters_file="params.txt")
    base.update(kw)
    return ScanConfig(**base)


def test_defaults_validate():
    cfg = _cfg(method="post").validate()
    assert cfg.method == "POST"
    assert cfg.resolved_workers == cfg.rate


def test_explicit_workers():
    assert _cfg(workers=3, rate=50).resolved_workers == 3


@pytest.mark.parametrize("kw,msg", [
    (dict(paths_file=""), "paths file"),
    (dict(parameters_file=""), "parameters file"),
    (dict(method="PUT"), "GET or POST"),
    (dict(rate=0), "rate"),
    (dict(rate=-5), "rate"),
    (dict(batch_size=0), "batch size"),
    (dict(workers=-1), "workers"),
    (dict(retries=-1), "retries"),
    (dict(timeout=0), "timeout"),
    (dict(queue_size=0), "queue size"),
    (dict(max_body=0), "max body"),
    (dict(max_time=0), "max time"),
])
def test_invalid(kw, msg):
    with pytest.raises(ConfigError, match=msg):
        _cfg(**kw).validate()

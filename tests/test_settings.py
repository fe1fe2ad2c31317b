from rsr.settings import _env_bool, _env_float, _env_int


def test_env_helpers(monkeypatch):
    monkeypatch.setenv("RSR_TEST_INT", "12")
    monkeypatch.setenv("RSR_TEST_BAD_INT", "twelve")
    monkeypatch.setenv("RSR_TEST_FLOAT", "0.25")
    monkeypatch.setenv("RSR_TEST_BOOL", "Yes")

    assert _env_int("RSR_TEST_INT", 1) == 12
    assert _env_int("RSR_TEST_BAD_INT", 1) == 1
    assert _env_int("RSR_TEST_MISSING", 7) == 7
    assert _env_float("RSR_TEST_FLOAT", 1.0) == 0.25
    assert _env_bool("RSR_TEST_BOOL") is True
    assert _env_bool("RSR_TEST_MISSING", True) is True

"""Tests for the booka-api server command."""

from unittest.mock import patch

from booka.commands import serve_api


def test_runs_app_with_defaults():
    with patch.object(serve_api.uvicorn, "run") as run:
        assert serve_api.main([]) == 0

    run.assert_called_once()
    args, kwargs = run.call_args
    assert args == ("booka.main:app",)
    assert kwargs["host"] == "0.0.0.0"
    assert kwargs["port"] == 8000
    assert kwargs["reload"] is False


def test_host_port_and_reload_flags():
    with patch.object(serve_api.uvicorn, "run") as run:
        serve_api.main(["--host", "127.0.0.1", "--port", "9001", "--reload"])

    kwargs = run.call_args.kwargs
    assert (kwargs["host"], kwargs["port"], kwargs["reload"]) == ("127.0.0.1", 9001, True)
    assert kwargs["reload_delay"] == 0.5

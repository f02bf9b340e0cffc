"""Tests for the run.py entry point module."""

from unittest.mock import patch

from gliner_api.run import main


def test_main_calls_uvicorn_with_correct_parameters() -> None:
    """Test that main() calls uvicorn.run with the configured server settings."""
    with patch("gliner_api.run.uvicorn.run") as mock_uvicorn_run:
        with patch("gliner_api.run.settings") as mock_settings:
            mock_settings.SERVER_HOST = "127.0.0.1"
            mock_settings.SERVER_PORT = 8080
            mock_settings.LOG_LEVEL = "DEBUG"
            mock_settings.SERVER_RELOAD = True

            main()

            mock_uvicorn_run.assert_called_once_with(
                "gliner_api.app.main:app",
                host="127.0.0.1",
                port=8080,
                log_level="debug",
                reload=True,
            )


def test_main_uses_default_settings() -> None:
    """Reload is off unless SERVER_RELOAD is set."""
    with patch("gliner_api.run.uvicorn.run") as mock_uvicorn_run:
        main()

        mock_uvicorn_run.assert_called_once()
        call_args = mock_uvicorn_run.call_args
        assert call_args[0] == ("gliner_api.app.main:app",)
        assert call_args[1]["port"] == 8000
        assert call_args[1]["reload"] is False


def test_main_converts_log_level_to_lowercase() -> None:
    with patch("gliner_api.run.uvicorn.run") as mock_uvicorn_run:
        with patch("gliner_api.run.settings") as mock_settings:
            mock_settings.SERVER_HOST = "localhost"
            mock_settings.SERVER_PORT = 8000
            mock_settings.LOG_LEVEL = "WARNING"
            mock_settings.SERVER_RELOAD = False

            main()

            assert mock_uvicorn_run.call_args[1]["log_level"] == "warning"

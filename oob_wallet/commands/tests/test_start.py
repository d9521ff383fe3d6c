from unittest import IsolatedAsyncioTestCase

from ...config.error import ArgsParseError
from ...tests import mock
from .. import start as test_module


class TestStart(IsolatedAsyncioTestCase):
    def test_bad_args(self):
        with self.assertRaises(ArgsParseError):
            test_module.execute(["--admin", "0.0.0.0", "8031"])

        with self.assertRaises(SystemExit):
            test_module.execute(["bad"])

    def test_execute(self):
        with mock.patch.object(
            test_module, "common_config", mock.MagicMock()
        ) as mock_common_config, mock.patch.object(
            test_module, "run_app", mock.MagicMock()
        ), mock.patch.object(
            test_module.asyncio, "run"
        ) as mock_asyncio_run, mock.patch.object(
            test_module, "Conductor", autospec=True
        ) as mock_conductor:
            test_module.execute(
                ["--admin", "0.0.0.0", "8031", "--admin-insecure-mode", "-l", "Bob"]
            )
            settings = mock_common_config.call_args[0][0]
            assert settings["admin.port"] == 8031
            assert settings["default_label"] == "Bob"
            mock_conductor.assert_called_once()
            mock_asyncio_run.assert_called_once()

    async def test_run_app_startup_error(self):
        conductor = mock.MagicMock(
            setup=mock.CoroutineMock(),
            start=mock.CoroutineMock(side_effect=OSError("port in use")),
            stop=mock.CoroutineMock(),
        )
        with self.assertRaises(OSError):
            await test_module.run_app(conductor)
        conductor.stop.assert_awaited_once()

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from openpyxl import load_workbook

from gstbill.config import load_config
from gstbill.errors import GatewayError
from gstbill.logging import LOG_FILENAME, ExcelLogger, ExcelLoggerConfig, configure_logging
from gstbill.settings import DEFAULT_PROFILE, CompanyProfile, ProfileProvider


def test_load_config_defaults_to_data_dir(tmp_path):
    config = load_config({"GSTBILL_DATA_DIR": str(tmp_path)})

    assert config.data_dir == tmp_path
    assert config.db_file == tmp_path / "gstbill.sqlite3"
    assert config.log_dir == tmp_path / "logs"
    assert config.invoice_prefix == "GD"
    assert config.low_stock_threshold == 10
    assert config.expiry_window_days == 90


def test_load_config_overrides(tmp_path):
    config = load_config(
        {
            "GSTBILL_DATA_DIR": str(tmp_path),
            "GSTBILL_DB_FILE": str(tmp_path / "other.db"),
            "GSTBILL_INVOICE_PREFIX": "INV",
            "GSTBILL_LOW_STOCK": "25",
            "GSTBILL_EXPIRY_DAYS": " 30 ",
        }
    )

    assert config.db_file == tmp_path / "other.db"
    assert config.invoice_prefix == "INV"
    assert config.low_stock_threshold == 25
    assert config.expiry_window_days == 30


@pytest.mark.parametrize(
    "env",
    [
        {"GSTBILL_INVOICE_PREFIX": "GD/X"},
        {"GSTBILL_LOW_STOCK": "many"},
        {"GSTBILL_EXPIRY_DAYS": "-1"},
    ],
)
def test_load_config_rejects_bad_values(env):
    with pytest.raises(ValueError):
        load_config(env)


def test_profile_provider_falls_back_to_default():
    calls = []

    def loader():
        calls.append(1)
        return None

    provider = ProfileProvider(loader)

    assert provider.profile is DEFAULT_PROFILE
    assert provider.profile is DEFAULT_PROFILE
    assert len(calls) == 1


def test_profile_provider_keeps_snapshot_until_reload():
    stored = [CompanyProfile(company_name="First")]
    provider = ProfileProvider(lambda: stored[-1])

    snapshot = provider.profile
    stored.append(CompanyProfile(company_name="Second"))

    assert provider.profile is snapshot
    assert provider.reload().company_name == "Second"


def test_configure_logging_writes_rotating_file(tmp_path):
    logger = configure_logging(tmp_path / "logs")
    try:
        logging.getLogger("gstbill.invoices").info("saved %s", "GD/2024/001")
        for handler in logger.handlers:
            handler.flush()

        content = (tmp_path / "logs" / LOG_FILENAME).read_text(encoding="utf-8")
        assert "saved GD/2024/001" in content
        assert "[gstbill.invoices]" in content
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()


def test_excel_logger_accepts_errors_and_plain_rows(tmp_path):
    logger = ExcelLogger(
        ExcelLoggerConfig(columns=("code", "message"), filename=str(tmp_path / "errors.xlsx"))
    )

    destination = logger.write_rows(
        [GatewayError("disk full"), ["CUSTOM", "plain row"]]
    )

    assert destination == Path(tmp_path / "errors.xlsx")
    workbook = load_workbook(destination)
    rows = list(workbook["Log"].iter_rows(values_only=True))
    workbook.close()
    assert rows == [
        ("code", "message"),
        ("STORAGE_FAILURE", "disk full"),
        ("CUSTOM", "plain row"),
    ]

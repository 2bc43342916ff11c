import json
import logging

from wholesale_pricing.config.logging_config import JSONFormatter
from wholesale_pricing.config.settings import DEFAULT_BREAKPOINTS, Settings


def test_defaults(tmp_path, monkeypatch):
    for var in ("WHOLESALE_PRICING_DATA_DIR", "WHOLESALE_PRICING_VAT_RATE", "WHOLESALE_PRICING_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    settings = Settings.load(project_root=tmp_path)
    assert settings.data_dir == tmp_path / "data"
    assert settings.tiers_csv == tmp_path / "data" / "tiers.csv"
    assert settings.default_territory == "Lagos"
    assert settings.default_currency == "NGN"
    assert settings.vat_rate == 0.075
    assert settings.matrix_breakpoints == DEFAULT_BREAKPOINTS


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("WHOLESALE_PRICING_DATA_DIR", str(tmp_path / "elsewhere"))
    monkeypatch.setenv("WHOLESALE_PRICING_VAT_RATE", "0.1")
    monkeypatch.setenv("WHOLESALE_PRICING_LOG_LEVEL", "debug")
    monkeypatch.setenv("WHOLESALE_PRICING_LOG_JSON", "true")
    settings = Settings.load(project_root=tmp_path)
    assert settings.groups_csv == tmp_path / "elsewhere" / "groups.csv"
    assert settings.vat_rate == 0.1
    assert settings.log_level == "DEBUG"
    assert settings.log_json is True


def test_json_formatter_carries_tenant_extras():
    record = logging.LogRecord("wholesale_pricing.engine", logging.WARNING, __file__, 1,
                               "Tax calculation failed", None, None)
    record.tenant_id = "acme"
    record.product_id = "SKU-1"
    data = json.loads(JSONFormatter().format(record))
    assert data["level"] == "WARNING"
    assert data["message"] == "Tax calculation failed"
    assert data["tenant_id"] == "acme"
    assert data["product_id"] == "SKU-1"
    assert "cell_id" not in data

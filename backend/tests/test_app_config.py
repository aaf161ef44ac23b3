import pytest

from fiscalpos import create_app
from conftest import VALID_NATURAL_TAX_ID, VALID_PRIVATE_TAX_ID


def _config(**overrides):
    config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    }
    config.update(overrides)
    return config


def test_default_issuer_is_accepted():
    app = create_app(_config())
    assert app.config["ISSUER_TAX_ID"] == VALID_PRIVATE_TAX_ID
    assert app.config["ACCESS_KEY_ENVIRONMENT"] == "1"


def test_production_environment_is_accepted():
    app = create_app(_config(ISSUER_TAX_ID=VALID_NATURAL_TAX_ID, ACCESS_KEY_ENVIRONMENT="2"))
    assert app.config["ISSUER_TAX_ID"] == VALID_NATURAL_TAX_ID


@pytest.mark.parametrize("tax_id", ["1790012345001", "179001234400", "ABCDEFGHIJKLM", ""])
def test_invalid_issuer_tax_id_is_rejected(tax_id):
    with pytest.raises(ValueError, match="ISSUER_TAX_ID"):
        create_app(_config(ISSUER_TAX_ID=tax_id))


@pytest.mark.parametrize("environment", ["0", "3", 1, ""])
def test_unknown_environment_is_rejected(environment):
    with pytest.raises(ValueError, match="ACCESS_KEY_ENVIRONMENT"):
        create_app(_config(ACCESS_KEY_ENVIRONMENT=environment))

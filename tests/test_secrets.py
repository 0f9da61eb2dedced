from __future__ import annotations

import asyncio

import pytest

from radiocms.config.settings import SecretsConfig
from radiocms.services import secrets as secrets_module
from radiocms.services.secrets import (
    SecretMissingError,
    SecretResolver,
    SecretStore,
    SecretStoreProvider,
    load_secret_store,
)


def test_resolver_falls_back_to_default_key() -> None:
    resolver = SecretResolver(SecretStore({"RADIOBOSS_FTP_PASSWORD": "pw"}), default_key="RADIOBOSS_FTP_PASSWORD")

    assert resolver.resolve(None) == "pw"
    assert resolver.resolve("  ") == "pw"
    assert resolver.key_name_for(" CUSTOM_KEY ") == "CUSTOM_KEY"


@pytest.mark.parametrize("store", [{}, {"CUSTOM_KEY": ""}, {"CUSTOM_KEY": "   "}])
def test_resolver_reports_missing_key_name(store) -> None:
    resolver = SecretResolver(SecretStore(store), default_key="RADIOBOSS_FTP_PASSWORD")

    with pytest.raises(SecretMissingError) as excinfo:
        resolver.resolve("CUSTOM_KEY")

    assert excinfo.value.key_name == "CUSTOM_KEY"
    assert "CUSTOM_KEY" in str(excinfo.value)
    assert not resolver.is_configured("CUSTOM_KEY")


def test_store_is_read_only_and_hides_values() -> None:
    store = SecretStore({"FTP": "hunter2"})

    with pytest.raises(TypeError):
        store["FTP"] = "other"  # type: ignore[index]
    assert "hunter2" not in repr(store)


def test_load_secret_store_merges_sources(tmp_path) -> None:
    (tmp_path / "RADIOBOSS_FTP_PASSWORD").write_text("from-file\n", encoding="utf-8")
    (tmp_path / ".hidden").write_text("ignored", encoding="utf-8")
    (tmp_path / "nested").mkdir()
    config = SecretsConfig(directory=str(tmp_path), include_environment=True, aws_secret_id=None)

    store = load_secret_store(
        config,
        environ={"RADIOBOSS_FTP_PASSWORD": "from-env", "OTHER": "value"},
    )

    assert store["RADIOBOSS_FTP_PASSWORD"] == "from-file"
    assert store["OTHER"] == "value"
    assert ".hidden" not in store
    assert "nested" not in store


def test_load_secret_store_reads_aws_bundle(tmp_path, monkeypatch) -> None:
    calls = []

    class FakeSecretsManager:
        def get_secret_value(self, SecretId):
            calls.append(SecretId)
            return {"SecretString": '{"RADIOBOSS_FTP_PASSWORD": "from-aws"}'}

    monkeypatch.setattr(
        secrets_module,
        "create_boto3_client",
        lambda service, region_name=None: FakeSecretsManager(),
    )
    config = SecretsConfig(
        directory=str(tmp_path / "missing"),
        include_environment=False,
        aws_secret_id="radiocms/prod",
    )

    store = load_secret_store(config)

    assert calls == ["radiocms/prod"]
    assert dict(store) == {"RADIOBOSS_FTP_PASSWORD": "from-aws"}


def test_provider_initialises_store_once() -> None:
    calls = []

    def loader() -> SecretStore:
        calls.append(1)
        return SecretStore({"KEY": "value"})

    provider = SecretStoreProvider(loader)

    async def scenario():
        return await asyncio.gather(*(provider.get() for _ in range(5)))

    stores = asyncio.run(scenario())

    assert len(calls) == 1
    assert provider.initialized
    assert all(store is stores[0] for store in stores)

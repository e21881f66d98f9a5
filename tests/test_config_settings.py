from wallet_analyzer.config import Settings, split_csv


def test_split_csv_trims_entries():
    assert split_csv(" eth, base ,,polygon ") == ["eth", "base", "polygon"]
    assert split_csv(None) == []
    assert split_csv(["a", " ", "b"]) == ["a", "b"]


def test_chain_lists_load_from_comma_separated_env(monkeypatch):
    monkeypatch.setenv("MORALIS_CHAINS", "eth, polygon")
    monkeypatch.setenv("COINBASE_NETWORK_IDS", "base-mainnet,eip155:1")
    monkeypatch.setenv("COVALENT_CHAIN_IDS", "")

    settings = Settings(_env_file=None)

    assert settings.moralis_chain_list == ["eth", "polygon"]
    assert settings.coinbase_networks == ["base-mainnet", "eip155:1"]
    assert settings.covalent_chain_list == ["eth-mainnet"]


def test_coinbase_networks_legacy_env_name(monkeypatch):
    monkeypatch.delenv("COINBASE_NETWORK_IDS", raising=False)
    monkeypatch.setenv("COINBASE_NETWORKS", "polygon")

    settings = Settings(_env_file=None)

    assert settings.coinbase_networks == ["polygon"]


def test_defaults(monkeypatch):
    for name in ("BALANCE_PROVIDER", "HISTORY_PROVIDER", "HISTORY_LOOKBACK_DAYS", "MORALIS_MAX_TRANSACTIONS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.balance_provider == "coinbase"
    assert settings.history_provider == "moralis"
    assert settings.history_lookback_days == 183
    assert settings.pagination_max_pages == 25
    assert settings.moralis_max_transactions == 200
    assert settings.has_coinbase_credentials is (bool(settings.coinbase_api_key) and bool(settings.coinbase_api_secret))

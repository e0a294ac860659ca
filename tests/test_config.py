from __future__ import annotations

import dataclasses
import json

import base58
import pytest
from hypothesis import given, strategies as st
from solders.keypair import Keypair

from darklake_wallet.config import WalletConfig, generate_tracking_id, load_config, load_keypair
from darklake_wallet.errors import ConfigError
from darklake_wallet.types import Network, SwapRequest


def test_defaults_when_env_is_empty() -> None:
    cfg = load_config(env={})

    assert cfg.gateway_host == "localhost"
    assert cfg.gateway_port == 50051
    assert cfg.gateway_target == "localhost:50051"
    assert cfg.network is Network.DEVNET
    assert cfg.input_amount == 1000
    assert cfg.min_out == 0
    assert cfg.poll_max_retries == 5
    assert cfg.poll_delay_ms == 1000
    assert cfg.tracking_id.startswith("id")


def test_env_values_are_coerced() -> None:
    cfg = load_config(env={
        "GATEWAY_HOST": "gateway.internal",
        "GATEWAY_PORT": "6000",
        "TOKEN_X_MINT": " So11111111111111111111111111111111111111112 ",
        "INPUT_AMOUNT": "2500",
        "MIN_OUT": "10",
        "NETWORK": "0",
        "REF_CODE": "ref42",
        "LABEL": "demo",
    })

    assert cfg.gateway_target == "gateway.internal:6000"
    assert cfg.token_x == "So11111111111111111111111111111111111111112"
    assert cfg.input_amount == 2500
    assert cfg.min_out == 10
    assert cfg.network is Network.MAINNET_BETA
    assert cfg.ref_code == "ref42"
    assert cfg.label == "demo"


def test_network_accepts_cluster_names() -> None:
    assert load_config(env={"NETWORK": "testnet"}).network is Network.TESTNET
    assert load_config(env={"NETWORK": "mainnet-beta"}).network is Network.MAINNET_BETA


@pytest.mark.parametrize("key,value", [("GATEWAY_PORT", "abc"), ("INPUT_AMOUNT", "1.5"), ("NETWORK", "moonnet")])
def test_uncoercible_values_raise_config_error(key: str, value: str) -> None:
    with pytest.raises(ConfigError):
        load_config(env={key: value})


def test_summary_never_contains_key_material() -> None:
    secret = json.dumps(list(bytes(Keypair())))
    cfg = load_config(env={"PRIVATE_KEY_BYTES": secret})

    assert secret not in str(cfg.summary())
    assert secret not in repr(cfg)


def test_tracking_ids_are_hex_suffixed() -> None:
    tracking_id = generate_tracking_id()
    int(tracking_id[2:], 16)


def test_load_keypair_from_json_array() -> None:
    kp = Keypair()

    loaded = load_keypair(json.dumps(list(bytes(kp))))

    assert loaded.pubkey() == kp.pubkey()


def test_load_keypair_from_base58() -> None:
    kp = Keypair()

    loaded = load_keypair(base58.b58encode(bytes(kp)).decode())

    assert loaded.pubkey() == kp.pubkey()


@pytest.mark.parametrize("raw", ["", "[1, 2, 3]", "[1, 2,", "[300, 1]", "0OIl", '["a"]'])
def test_malformed_key_material_raises_config_error(raw: str) -> None:
    with pytest.raises(ConfigError):
        load_keypair(raw)


@given(
    amount=st.integers(min_value=0, max_value=2**64 - 1),
    min_out=st.integers(min_value=0, max_value=2**64 - 1),
    network=st.sampled_from(list(Network)),
    ref_code=st.text(max_size=12),
)
def test_swap_request_construction_leaves_config_untouched(amount, min_out, network, ref_code):
    cfg = WalletConfig(input_amount=amount, min_out=min_out, network=network, ref_code=ref_code, tracking_id="idabc")
    before = dataclasses.asdict(cfg)

    request = SwapRequest.from_config(cfg, user_address="Wallet1111111111111111111111111111111111111")

    assert dataclasses.asdict(cfg) == before
    assert request.amount_in == amount
    assert request.min_out == min_out
    assert request.network is network
    assert request.tracking_id == "idabc"
    assert request.ref_code == ref_code

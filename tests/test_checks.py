import pytest

from txmempool.checks import (
    MempoolError,
    MempoolIsFullError,
    PreCheckError,
    TxInCacheError,
    TxTooLargeError,
    is_pre_check_error,
    post_check_max_gas,
    pre_check_max_bytes,
)
from txmempool.types import CheckTxResponse

TX20 = bytes(range(20))


def test_pre_check_max_bytes_accepts_fitting_tx():
    check = pre_check_max_bytes(22)
    assert check(TX20) is None


def test_pre_check_max_bytes_rejects_large_tx():
    check = pre_check_max_bytes(10)
    with pytest.raises(ValueError, match="tx size is too big"):
        check(TX20)


@pytest.mark.parametrize("max_gas", [-1, 1, 3000])
def test_post_check_max_gas_accepts(max_gas):
    check = post_check_max_gas(max_gas)
    assert check(TX20, CheckTxResponse(gas_wanted=1)) is None


def test_post_check_max_gas_rejects_too_much_gas():
    check = post_check_max_gas(0)
    with pytest.raises(ValueError, match="is greater than max gas"):
        check(TX20, CheckTxResponse(gas_wanted=1))


def test_post_check_max_gas_rejects_negative_gas():
    check = post_check_max_gas(10)
    with pytest.raises(ValueError, match="is negative"):
        check(TX20, CheckTxResponse(gas_wanted=-1))


def test_post_check_disabled_ignores_negative_gas():
    check = post_check_max_gas(-1)
    assert check(TX20, CheckTxResponse(gas_wanted=-5)) is None


def test_error_messages_and_fields():
    too_large = TxTooLargeError(max=5, actual=6)
    assert str(too_large) == "Tx too large. Max size is 5, but got 6"
    assert (too_large.max, too_large.actual) == (5, 6)

    full = MempoolIsFullError(num_txs=1, max_txs=2, txs_bytes=3, max_txs_bytes=4)
    assert str(full) == (
        "mempool is full: number of txs 1 (max: 2), total txs bytes 3 (max: 4)"
    )
    assert str(TxInCacheError()) == "tx already exists in cache"
    assert isinstance(full, MempoolError)


def test_pre_check_error_wraps_reason():
    reason = ValueError("bad tx")
    err = PreCheckError(reason)
    assert str(err) == "bad tx"
    assert err.reason is reason


def test_is_pre_check_error():
    assert is_pre_check_error(PreCheckError(ValueError("x")))
    assert not is_pre_check_error(TxInCacheError())
    assert not is_pre_check_error(None)


def test_is_pre_check_error_follows_chain():
    try:
        try:
            raise PreCheckError(ValueError("inner"))
        except PreCheckError as inner:
            raise RuntimeError("outer") from inner
    except RuntimeError as outer:
        assert is_pre_check_error(outer)
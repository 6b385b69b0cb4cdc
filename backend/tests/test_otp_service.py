from __future__ import annotations

import time

import pyotp

from tabsync.services.otp_service import OTPService


def test_current_code_verifies_and_others_do_not() -> None:
    service = OTPService(issuer="Tabsync", interval=30, valid_window=1)
    secret = service.generate_secret()

    assert service.verify(secret, service.current_otp(secret))
    assert not service.verify(secret, "")
    assert not service.verify(secret, "not-a-code")


def test_adjacent_step_is_accepted_within_window() -> None:
    service = OTPService(interval=30, valid_window=1)
    secret = service.generate_secret()
    previous = pyotp.TOTP(secret, interval=30).at(time.time() - 30)
    far_past = pyotp.TOTP(secret, interval=30).at(time.time() - 300)

    assert service.verify(secret, previous)
    assert not OTPService(interval=30, valid_window=0).verify(secret, far_past)


def test_provisioning_uri_names_issuer_and_account() -> None:
    service = OTPService(issuer="Tabsync")
    secret = service.generate_secret()
    uri = service.provisioning_uri(secret, "alice")

    assert uri.startswith("otpauth://totp/Tabsync:alice")
    assert f"secret={secret}" in uri

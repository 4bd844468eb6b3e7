"""
A collection of Pydantic validators
See https://docs.pydantic.dev/latest/concepts/validators/#reuse-validators
"""

import re

import phonenumbers

CURRENCY_REGEX = re.compile(r"^[A-Z]{3}$")


def password_validator(password: str) -> str:
    """
    Check the password strength, validity and remove trailing spaces.
    This function is intended to be used as a Pydantic validator
    """
    password = password.strip()
    if len(password) < 8:
        raise ValueError("The password must be at least 8 characters long")  # noqa: TRY003
    return password


def phone_formatter(phone: str | None) -> str | None:
    """
    Verify that a phone number is parsable and format it using E164.
    This function is intended to be used as a Pydantic validator
    """
    if phone is None:
        return None

    # We need to raise a ValueError for Pydantic to catch it and return an error response
    try:
        parsed_phone = phonenumbers.parse(phone, None)
    except phonenumbers.NumberParseException as error:
        raise ValueError(f"Invalid phone number: {error}") from error  # noqa: TRY003
    if not phonenumbers.is_possible_number(parsed_phone):
        raise ValueError("Invalid phone number, number is not possible")  # noqa: TRY003
    if not phonenumbers.is_valid_number(parsed_phone):
        raise ValueError("Invalid phone number, number is not valid")  # noqa: TRY003
    return phonenumbers.format_number(parsed_phone, phonenumbers.PhoneNumberFormat.E164)


def email_normalizer(email: str) -> str:
    """
    Normalize the email address by lowercasing it. We also remove trailing spaces.
    This function is intended to be used as a Pydantic validator
    """
    return email.lower().strip()


def trailing_spaces_remover(value: str | None) -> str | None:
    """
    Remove trailing spaces.

    If the value is None, it is returned as is. The validator can thus be used for optional values.
    """
    if value is not None:
        return value.strip()
    return value


def currency_validator(currency: str | None) -> str | None:
    """
    Currencies are stored as ISO 4217 codes, ex: `GHS`, `EUR`
    """
    if currency is None:
        return None
    currency = currency.strip().upper()
    if not CURRENCY_REGEX.match(currency):
        raise ValueError("Currency must be a three letters ISO 4217 code")  # noqa: TRY003
    return currency


def required_text(value: str) -> str:
    """
    Remove trailing spaces and refuse values left empty.
    This function is intended to be used as a Pydantic validator
    """
    value = value.strip()
    if not value:
        raise ValueError("This field can not be empty")  # noqa: TRY003
    return value

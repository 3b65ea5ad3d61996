"""Key encoding utility

This module converts unsigned 64-bit identifiers into short alphanumeric keys
and back. Keys are plain base-62 numerals over the alphabet [a-zA-Z0-9], so
the uniqueness of a key is inherited entirely from the uniqueness of its
identifier: there is no hashing and no collision-retry loop.

Classes:
    KeyEncoder:
        Bijective identifier <-> key codec with optional salted obfuscation.

Functions:
    encode_key(identifier) -> str:
        Encode with the default encoder.
    decode_key(key) -> int:
        Decode with the default encoder.

Example:
    >>> from shortcore.utils.encoder import KeyEncoder
    >>> encoder = KeyEncoder()
    >>> encoder.encode(125)
    'aaaaacb'
    >>> encoder.decode('aaaaacb')
    125
    >>> encoder.decode('!!bad!!')
    Traceback (most recent call last):
        ...
    shortcore.exceptions.MalformedKeyError: Key '!!bad!!' contains characters outside the key alphabet.
"""

import string
from typing import Optional

import xxhash
from beartype import beartype

from shortcore.constants import MAX_IDENTIFIER, MAX_KEY_LENGTH, Defaults
from shortcore.exceptions import MalformedKeyError


ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits
BASE = len(ALPHABET)  # 26 lowercase + 26 uppercase + 10 digits
MODULO_SPACE = MAX_IDENTIFIER + 1


class KeyEncoder:
    """Encode identifiers into base-62 keys and decode them back.

    `decode(encode(identifier)) == identifier` holds for every identifier in
    [0, 2**64 - 1]. Generated keys are left-padded with the zero digit ('a')
    up to `min_length` and are never longer than 11 characters.

    When a `salt` is given, identifiers first go through an affine
    permutation over the 64-bit space, `(identifier * mult + xxh64(salt)) mod 2**64`,
    so that sequential identifiers do not produce visibly sequential keys.
    `mult` must be odd, which makes the permutation invertible. This is
    obfuscation, not encryption, and salted keys spread over the whole
    64-bit space, i.e. they are mostly 10-11 characters long.

    Attributes:
        min_length (int):
            Length generated keys are padded to.
        salt (Optional[str]):
            Secret salt enabling the permutation. None disables it.
        mult (int):
            Multiplicative factor of the permutation.
    """

    def __init__(self, min_length: int = Defaults.KEY_MIN_LENGTH, salt: Optional[str] = None, mult: int = Defaults.KEY_MULTIPLIER):
        if not isinstance(min_length, int) or not 1 <= min_length <= MAX_KEY_LENGTH:
            raise ValueError(f'Minimum key length must be an integer in [1, {MAX_KEY_LENGTH}] (given value: {min_length!r}).')
        if salt is not None and (not isinstance(salt, str) or not salt):
            raise ValueError(f'Salt must be a non-empty string or None (given value: {salt!r}).')
        if mult % 2 == 0:
            raise ValueError(f'Multiplicative factor must be coprime with mod (2**64) (given value: mult={mult}).')

        self.min_length = min_length
        self.salt = salt
        self.mult = mult % MODULO_SPACE
        self._inverse = pow(self.mult, -1, MODULO_SPACE)
        self._offset = xxhash.xxh64_intdigest(salt) if salt is not None else 0

    @beartype
    def encode(self, identifier: int) -> str:
        """Encode an identifier into a key

        Args:
            identifier (int):
                Unsigned 64-bit identifier.

        Returns:
            str: Base-62 key of length in [min_length, 11].

        Raises:
            ValueError:
                If the identifier is negative or exceeds 2**64 - 1.
        """
        if not 0 <= identifier <= MAX_IDENTIFIER:
            raise ValueError(f'Identifier must be in [0, {MAX_IDENTIFIER}] (given value: {identifier}).')

        value = self._permute(identifier)
        digits = []
        while True:
            value, remainder = divmod(value, BASE)
            digits.append(ALPHABET[remainder])
            if value == 0:
                break
        return ''.join(reversed(digits)).rjust(self.min_length, ALPHABET[0])

    @beartype
    def decode(self, key: str) -> int:
        """Decode a generated key back into its identifier

        Only canonical spellings are accepted: a key with more leading zero
        digits than padding requires is rejected, so that every identifier has
        exactly one key.

        Raises:
            MalformedKeyError:
                If the key is not a canonical encoding of an identifier.
        """
        value = self._numeral(key)
        identifier = self._unpermute(value)
        if self.encode(identifier) != key:
            raise MalformedKeyError(f"Key '{key}' is not a canonical encoding (expected '{self.encode(identifier)}').")
        return identifier

    @beartype
    def check_shape(self, key: str) -> str:
        """Validate that a string is structurally a key

        Checks the alphabet, the length budget and the 64-bit range only. This
        does not prove a mapping exists, and it accepts custom aliases which
        are not canonical encodings.

        Returns:
            str: the key, unchanged.

        Raises:
            MalformedKeyError:
                If the string can never be a key.
        """
        self._numeral(key)
        return key

    def is_well_formed(self, key: str) -> bool:
        try:
            self.check_shape(key)
        except MalformedKeyError:
            return False
        return True

    def _numeral(self, key: str) -> int:
        if not key:
            raise MalformedKeyError('Key must be a non-empty string.')
        if len(key) > MAX_KEY_LENGTH:
            raise MalformedKeyError(f"Key '{key}' is longer than {MAX_KEY_LENGTH} characters.")

        value = 0
        for char in key:
            digit = ALPHABET.find(char)
            if digit < 0:
                raise MalformedKeyError(f"Key '{key}' contains characters outside the key alphabet.")
            value = value * BASE + digit

        if value > MAX_IDENTIFIER:
            raise MalformedKeyError(f"Key '{key}' decodes beyond the 64-bit identifier range.")
        return value

    def _permute(self, identifier: int) -> int:
        if self.salt is None:
            return identifier
        return (identifier * self.mult + self._offset) % MODULO_SPACE

    def _unpermute(self, value: int) -> int:
        if self.salt is None:
            return value
        return ((value - self._offset) * self._inverse) % MODULO_SPACE


_default_encoder = KeyEncoder()


def encode_key(identifier: int) -> str:
    return _default_encoder.encode(identifier)


def decode_key(key: str) -> int:
    return _default_encoder.decode(key)

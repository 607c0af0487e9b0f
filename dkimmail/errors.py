# This software is provided 'as-is', without any express or implied
# warranty.  In no event will the author be held liable for any damages
# arising from the use of this software.
#
# Permission is granted to anyone to use this software for any purpose,
# including commercial applications, and to alter it and redistribute it
# freely, subject to the following restrictions:
#
# 1. The origin of this software must not be misrepresented; you must not
#    claim that you wrote the original software. If you use this software
#    in a product, an acknowledgment in the product documentation would be
#    appreciated but is not required.
# 2. Altered source versions must be plainly marked as such, and must not be
#    misrepresented as being the original software.
# 3. This notice may not be removed or altered from any source distribution.

__all__ = [
    'ConfigError',
    'CryptoError',
    'DKIMException',
    'KeyFormatError',
    'KeyReadError',
    'SigningError',
    'TransportError',
    'UnsupportedKeyError',
    'ValidationError',
    ]


class DKIMException(Exception):
    """Base class for dkimmail errors."""
    pass


class ConfigError(DKIMException):
    """Missing or invalid command line input."""
    pass


class KeyReadError(DKIMException, OSError):
    """The private key file could not be read."""
    pass


class KeyFormatError(DKIMException):
    """Key format error while decoding or parsing a private key."""
    pass


class UnsupportedKeyError(KeyFormatError):
    """The key parsed, but is not of an accepted type or size."""
    pass


class ValidationError(DKIMException):
    """Malformed message header or RFC822 structure."""
    pass


class SigningError(DKIMException):
    """The message cannot be signed with the requested options."""
    pass


class CryptoError(DKIMException):
    """Key/algorithm mismatch or failure of the signing primitive."""
    pass


class TransportError(DKIMException):
    """Delivery of the signed message failed."""
    pass

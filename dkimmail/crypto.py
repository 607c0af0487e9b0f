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
#
# Copyright (c) 2008 Greg Hewgill http://hewgill.com
#
# This has been modified from the original software.
# Copyright (c) 2011 William Grant <me@williamgrant.id.au>
#
# This has been modified from the original software.

__all__ = [
    'DigestTooLargeError',
    'ed25519_sign',
    'HASH_ALGORITHMS',
    'KEY_TYPES',
    'load_ed25519_key',
    'load_private_key',
    'parse_pem_private_key',
    'parse_private_key',
    'PrivateKey',
    'RSASSA_PKCS1_v1_5_sign',
    'SignatureError',
    'UnparsableKeyError',
    ]

import base64
import binascii
import collections
import hashlib
import os.path
import re

import nacl.encoding
import nacl.exceptions
import nacl.signing
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from dkimmail.errors import (
    KeyFormatError,
    KeyReadError,
    UnsupportedKeyError,
    )
from dkimmail.util import get_default_logger


#: Signature algorithm (a= tag) to digest constructor.
HASH_ALGORITHMS = {
    b'rsa-sha256': hashlib.sha256,
    b'ed25519-sha256': hashlib.sha256,
    }

#: Signature algorithm (a= tag) to the key type it requires.
KEY_TYPES = {
    b'rsa-sha256': 'rsa',
    b'ed25519-sha256': 'ed25519',
    }

# DER encoded DigestInfo prefixes, from RFC 8017, section 9.2 Notes.
DIGEST_INFO_PREFIX = {
    'sha256': b'\x30\x31\x30\x0d\x06\x09\x60\x86\x48\x01\x65\x03\x04\x02\x01'
              b'\x05\x00\x04\x20',
    }

# RFC 8301 forbids signing with anything shorter.
MIN_KEY_BITS = 1024
RECOMMENDED_KEY_BITS = 2048

RE_PEM = re.compile(
    br'-----BEGIN ([A-Z0-9 ]+)-----\r?\n(.*?)-----END \1-----', re.DOTALL)

#: A loaded signing key.  key_type is 'rsa' or 'ed25519'; for RSA, key is
#: a dict of the RFC3447 RSAPrivateKey integers, for Ed25519 a
#: nacl.signing.SigningKey.
PrivateKey = collections.namedtuple('PrivateKey', ['key_type', 'key', 'bits'])


class DigestTooLargeError(Exception):
    """The digest is too large to fit within the requested length."""
    pass


class UnparsableKeyError(Exception):
    """The data could not be parsed as a key."""
    pass


class SignatureError(Exception):
    """The signing primitive failed."""
    pass


class UnsupportedKeyTypeError(UnparsableKeyError):
    """The data parsed as a key of a type we do not sign with."""
    pass


def bitsize(x):
    """Return size of long in bits."""
    return len(bin(x)) - 2


def parse_private_key(data):
    """Parse an RSA private key.

    @param data: DER-encoded PKCS#8 PrivateKeyInfo or RFC3447 RSAPrivateKey.
    @return: RSA private key
    """
    try:
        key = serialization.load_der_private_key(data, password=None)
    except TypeError:
        raise UnparsableKeyError("encrypted private keys are not supported")
    except (ValueError, UnsupportedAlgorithm) as e:
        raise UnparsableKeyError(str(e) or "could not parse private key")
    if not isinstance(key, rsa.RSAPrivateKey):
        raise UnsupportedKeyTypeError(
            "not an RSA private key (%s)" % type(key).__name__)
    numbers = key.private_numbers()
    pk = {
        'modulus': numbers.public_numbers.n,
        'publicExponent': numbers.public_numbers.e,
        'privateExponent': numbers.d,
        'prime1': numbers.p,
        'prime2': numbers.q,
        'exponent1': numbers.dmp1,
        'exponent2': numbers.dmq1,
        'coefficient': numbers.iqmp,
    }
    return pk


def parse_pem_private_key(data):
    """Parse a PEM RSA private key.

    @param data: PKCS#8 or RFC3447 RSAPrivateKey in PEM format.
    @return: RSA private key
    """
    m = RE_PEM.search(data)
    if m is None:
        raise UnparsableKeyError("Private key not found")
    try:
        pkdata = base64.b64decode(m.group(2))
    except (TypeError, binascii.Error) as e:
        raise UnparsableKeyError(str(e))
    return parse_private_key(pkdata)


def _read_key_file(path):
    if os.path.isdir(path):
        raise KeyReadError("%s: is a directory, expected a file" % path)
    try:
        with open(path, 'rb') as f:
            return f.read()
    except OSError as e:
        raise KeyReadError("%s: %s" % (path, e.strerror or e))


def load_private_key(path, minkey=MIN_KEY_BITS, logger=None):
    """Load an RSA signing key from a PEM file.

    @param path: file holding a PEM encoded PKCS#8 RSA private key
    @param minkey: the smallest modulus, in bits, accepted for signing
    @param logger: a logger to which warnings will be written (default None)
    @return: L{PrivateKey}
    @raise KeyReadError: the file cannot be read or is a directory
    @raise KeyFormatError: no PEM block, or the block is not a private key
    @raise UnsupportedKeyError: the key is not RSA or is too small
    """
    if logger is None:
        logger = get_default_logger()
    data = _read_key_file(path)
    try:
        pk = parse_pem_private_key(data)
    except UnsupportedKeyTypeError as e:
        raise UnsupportedKeyError(str(e))
    except UnparsableKeyError as e:
        raise KeyFormatError("%s: %s" % (path, e))
    bits = bitsize(pk['modulus'])
    if bits < minkey:
        raise UnsupportedKeyError(
            "private key too small: %d bits (minimum %d)" % (bits, minkey))
    if bits < RECOMMENDED_KEY_BITS:
        logger.warning("private key is only %d bits, %d recommended",
                       bits, RECOMMENDED_KEY_BITS)
    return PrivateKey('rsa', pk, bits)


def load_ed25519_key(path):
    """Load an Ed25519 signing key.

    @param path: file holding the base64 encoded 32 byte private seed
    @return: L{PrivateKey}
    """
    data = _read_key_file(path)
    try:
        sk = nacl.signing.SigningKey(
            data.strip(), encoder=nacl.encoding.Base64Encoder)
    except (TypeError, ValueError) as e:
        raise KeyFormatError("%s: not an ed25519 private key (%s)" % (path, e))
    return PrivateKey('ed25519', sk, 256)


def EMSA_PKCS1_v1_5_encode(hash, mlen):
    """Encode a digest with RFC3447 EMSA-PKCS1-v1_5.

    @param hash: hash object to encode
    @param mlen: desired message length
    @return: encoded digest byte string
    """
    dinfo = DIGEST_INFO_PREFIX[hash.name] + hash.digest()
    if len(dinfo) + 11 > mlen:
        raise DigestTooLargeError()
    return b"\x00\x01" + b"\xff" * (mlen - len(dinfo) - 3) + b"\x00" + dinfo


def str2int(s):
    """Convert a byte string to an integer.

    @param s: byte string representing a positive integer to convert
    @return: converted integer
    """
    r = 0
    for c in bytearray(s):
        r = (r << 8) | c
    return r


def int2str(n, length=-1):
    """Convert an integer to a byte string.

    @param n: positive integer to convert
    @param length: minimum length
    @return: converted bytestring, of at least the minimum length if it was
        specified
    """
    assert n >= 0
    r = bytearray()
    while length < 0 or len(r) < length:
        r.append(n & 0xff)
        n >>= 8
        if length < 0 and n == 0:
            break
    r.reverse()
    assert length < 0 or len(r) == length
    return bytes(r)


def perform_rsa(message, exponent, modulus, mlen):
    """Perform RSA signing or verification.

    @param message: byte string to operate on
    @param exponent: public or private key exponent
    @param modulus: key modulus
    @param mlen: desired output length
    @return: byte string result of the operation
    """
    return int2str(pow(str2int(message), exponent, modulus), mlen)


def RSASSA_PKCS1_v1_5_sign(hash, private_key):
    """Sign a digest with RFC3447 RSASSA-PKCS1-v1_5.

    @param hash: hash object to sign
    @param private_key: private key data
    @return: signed digest byte string
    """
    modlen = len(int2str(private_key['modulus']))
    encoded_digest = EMSA_PKCS1_v1_5_encode(hash, modlen)
    return perform_rsa(
        encoded_digest, private_key['privateExponent'],
        private_key['modulus'], modlen)


def ed25519_sign(hash, signing_key):
    """Sign a digest with Ed25519 as described in RFC8463.

    The digest itself, not the signing input, is the Ed25519 message.
    """
    try:
        return signing_key.sign(hash.digest()).signature
    except nacl.exceptions.CryptoError as e:
        raise SignatureError(str(e))

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
# Copyright (c) 2016 Google, Inc.
# Contact: Brandon Long <blong@google.com>
#
# This has been modified from the original software.
# Copyright (c) 2016 Scott Kitterman <scott@kitterman.com>
#
# This has been modified from the original software.


import base64
import collections
import re

from dkimmail.canonicalization import (
    algorithm,
    CanonicalizationPolicy,
    InvalidCanonicalizationPolicyError,
    Relaxed,
    Simple,
    )
from dkimmail.crypto import (
    DigestTooLargeError,
    ed25519_sign,
    HASH_ALGORITHMS,
    KEY_TYPES,
    load_ed25519_key,
    load_private_key,
    PrivateKey,
    RSASSA_PKCS1_v1_5_sign,
    SignatureError,
    )
from dkimmail.errors import (
    ConfigError,
    CryptoError,
    DKIMException,
    KeyFormatError,
    KeyReadError,
    SigningError,
    TransportError,
    UnsupportedKeyError,
    ValidationError,
    )
from dkimmail.message import (
    build,
    SignedMessage,
    UnsignedMessage,
    )
from dkimmail.util import get_default_logger

__all__ = [
    "build",
    "ConfigError",
    "CryptoError",
    "DKIM",
    "DKIMException",
    "KeyFormatError",
    "KeyReadError",
    "load_ed25519_key",
    "load_private_key",
    "PrivateKey",
    "Relaxed",
    "sign",
    "SignedMessage",
    "SigningError",
    "SignOptions",
    "Simple",
    "TransportError",
    "UnsignedMessage",
    "UnsupportedKeyError",
    "ValidationError",
]

#: Signing primitive for each key type.
SIGNERS = {
    'rsa': RSASSA_PKCS1_v1_5_sign,
    'ed25519': ed25519_sign,
}

#: The rfc6376 recommended header fields not to sign.
SHOULD_NOT = (
    b'return-path', b'received', b'comments', b'keywords', b'bcc',
    b'resent-bcc', b'dkim-signature'
)

#: RFC6376 selector and domain-name syntax.
RE_DOMAIN = re.compile(
    br"[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?"
    br"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)*\Z")

#: Where a line too long to fold at column 72 may break.
RE_FOLD_POINT = re.compile(br"[ :]")

#: Local-part of an i= value: printable, no semicolon.
RE_LOCAL_PART = re.compile(br"[\x21-\x3a\x3c-\x7e]*\Z")


def _to_bytes(value, what):
    if isinstance(value, bytes):
        return value
    try:
        return value.encode('ascii')
    except UnicodeEncodeError:
        raise SigningError("%s must be ASCII: %r" % (what, value))


def check_identity(identity, domain):
    """Require an i= value whose domain is d= or one of its subdomains.

    >>> check_identity(b'@mail.example.com', b'example.com')
    >>> check_identity(b'@badexample.com', b'example.com')
    Traceback (most recent call last):
    ...
    dkimmail.errors.SigningError: identity must be within domain example.com
    """
    local, at, idomain = identity.rpartition(b'@')
    if not at:
        raise SigningError("identity must contain @: %r" % identity)
    if RE_LOCAL_PART.match(local) is None or \
            RE_DOMAIN.match(idomain) is None:
        raise SigningError("invalid identity: %r" % identity)
    idomain = idomain.lower()
    domain = domain.lower()
    if idomain != domain and not idomain.endswith(b'.' + domain):
        raise SigningError(
            "identity must be within domain %s" % domain.decode('ascii'))


class SignOptions(collections.namedtuple('SignOptions', [
        'domain', 'selector', 'signature_algorithm',
        'header_canonicalization', 'body_canonicalization',
        'include_headers', 'body_length_limit', 'identity'])):
    """Parameters of one signing operation.

    Values may be given as str or bytes; they are stored as bytes, with
    header names lowercased.
    """

    __slots__ = ()

    def __new__(cls, domain, selector, signature_algorithm=b'rsa-sha256',
                header_canonicalization=b'relaxed',
                body_canonicalization=b'relaxed',
                include_headers=(b'from', b'to', b'subject'),
                body_length_limit=None, identity=None):
        domain = _to_bytes(domain, "domain")
        selector = _to_bytes(selector, "selector")
        if RE_DOMAIN.match(domain) is None:
            raise SigningError("invalid domain: %r" % domain)
        if RE_DOMAIN.match(selector) is None:
            raise SigningError("invalid selector: %r" % selector)
        signature_algorithm = _to_bytes(
            signature_algorithm, "signature algorithm").lower()
        if signature_algorithm not in HASH_ALGORITHMS:
            raise SigningError(
                "Unsupported signature algorithm: %s"
                % signature_algorithm.decode('ascii'))
        try:
            header_canonicalization = algorithm(header_canonicalization).name
            body_canonicalization = algorithm(body_canonicalization).name
        except InvalidCanonicalizationPolicyError as e:
            raise SigningError("invalid canonicalization: %r" % e.args[0])
        include_headers = tuple(
            _to_bytes(x, "header name").lower() for x in include_headers)
        if body_length_limit is not None and body_length_limit < 0:
            raise SigningError("body length limit must not be negative")
        if identity is not None:
            identity = _to_bytes(identity, "identity")
            check_identity(identity, domain)
        return super(SignOptions, cls).__new__(
            cls, domain, selector, signature_algorithm,
            header_canonicalization, body_canonicalization,
            include_headers, body_length_limit, identity)

    def canonicalization_policy(self):
        return CanonicalizationPolicy.from_c_value(
            self.header_canonicalization + b'/' + self.body_canonicalization)


def select_headers(headers, include_headers):
    """Select message header fields to be signed/verified.

    >>> h = [('from','biz'),('foo','bar'),('from','baz'),('subject','boring')]
    >>> i = ['from','subject','to','from']
    >>> select_headers(h,i)
    [('from', 'baz'), ('subject', 'boring'), ('from', 'biz')]
    >>> h = [('From','biz'),('Foo','bar'),('Subject','Boring')]
    >>> i = ['from','subject','to','from']
    >>> select_headers(h,i)
    [('From', 'biz'), ('Subject', 'Boring')]
    """
    sign_headers = []
    lastindex = {}
    for h in include_headers:
        assert h == h.lower()
        i = lastindex.get(h, len(headers))
        while i > 0:
            i -= 1
            if h == headers[i][0].lower():
                sign_headers.append(headers[i])
                break
        lastindex[h] = i
    return sign_headers


def fold(header):
    """Fold a header line into multiple crlf-separated lines at column 72.

    Lines break after a space, or after a colon in long h= lists.  Only
    base64 b= and bh= values are split elsewhere; any other token longer
    than a line runs past column 72.

    >>> fold(b'foo')
    b'foo'
    >>> fold(b'foo  '+b'foo'*24).splitlines()[0]
    b'foo  '
    >>> fold(b'foo'*25) == b'foo'*25
    True
    >>> fold(b'b='+b'x'*80).splitlines()[-1]
    b' xxxxxxxxxx'
    """
    i = header.rfind(b"\r\n ")
    if i == -1:
        pre = b""
    else:
        i += 3
        pre = header[:i]
        header = header[i:]
    in_base64 = False
    while len(header) > 72:
        i = header[:72].rfind(b" ")
        if i == -1:
            i = header[:72].rfind(b":")
        if i != -1:
            j = i + 1
            in_base64 = False
        elif in_base64 or header.startswith((b"b=", b"bh=")):
            j = 72
            in_base64 = True
        else:
            m = RE_FOLD_POINT.search(header, 72)
            if m is None:
                break
            j = m.end()
        pre += header[:j] + b"\r\n "
        header = header[j:]
    return pre + header


def hash_headers(hasher, canon_policy, headers, include_headers, sigheader):
    """Update hash for signed message header fields.

    The signature header is hashed last, canonicalized, with no trailing
    CRLF even if the canonicalization algorithm would add one.
    @return: the canonicalized header fields that were hashed
    """
    sign_headers = canon_policy.canonicalize_headers(
        select_headers(headers, include_headers))
    cheaders = canon_policy.canonicalize_headers([sigheader])
    for x, y in sign_headers + [(x, y.rstrip()) for x, y in cheaders]:
        hasher.update(x)
        hasher.update(b":")
        hasher.update(y)
    return sign_headers


#: Hold a message and the results of signing it.
class DKIM(object):

  #: Create a DKIM instance to sign an rfc5322 message.
  #:
  #: @param message: an L{UnsignedMessage}, or raw RFC822 bytes
  #: (with either \\n or \\r\\n line endings)
  #: @param logger: a logger to which debug info will be written
  #: (default None)
  def __init__(self, message, logger=None):
    if not isinstance(message, UnsignedMessage):
        message = UnsignedMessage.parse(message)
    self.message = message
    if logger is None:
        logger = get_default_logger()
    self.logger = logger
    #: Signature tags of the last signature produced.
    self.signature_fields = {}
    #: The canonicalized header fields last signed.
    self.signed_headers = []
    #: The h= header names last signed, in signing order.
    self.include_headers = ()

  def check_headers(self, include_headers):
    # rfc6376 says FROM is required
    if b'from' not in include_headers:
        raise SigningError("The From header field MUST be signed")
    for x in include_headers:
        if x in SHOULD_NOT:
            raise SigningError(
                "The %s header field SHOULD NOT be signed"
                % x.decode('ascii'))
    present = set(k.lower() for k, v in self.message.headers)
    missing = [x for x in include_headers if x not in present]
    if missing:
        raise SigningError(
            "Header fields to sign are missing from the message: %s"
            % ", ".join(x.decode('ascii') for x in missing))

  #: Sign the message and return it with a DKIM-Signature header field.
  #:
  #: Instances of a repeated field are signed from bottom to top.  Naming
  #: a field more times than it is present prevents additional instances
  #: from being added without breaking the signature.
  #:
  #: @param key: a L{PrivateKey} from L{load_private_key} or
  #: L{load_ed25519_key}
  #: @param options: L{SignOptions}
  #: @return: L{SignedMessage}
  #: @raise SigningError: when the message or options cannot be signed
  #: @raise CryptoError: when the key does not fit the algorithm, or the
  #: signing primitive fails
  def sign(self, key, options):
    include_headers = options.include_headers
    self.check_headers(include_headers)

    domain = options.domain

    key_type = KEY_TYPES[options.signature_algorithm]
    if key.key_type != key_type:
        raise CryptoError(
            "%s key cannot sign with %s" % (
                key.key_type, options.signature_algorithm.decode('ascii')))
    try:
        signer = SIGNERS[key.key_type]
    except KeyError:
        raise CryptoError("Unsupported key type: %s" % key.key_type)

    canon_policy = options.canonicalization_policy()
    body = canon_policy.canonicalize_body(self.message.body)
    if options.body_length_limit is not None:
        body = body[:options.body_length_limit]

    hasher = HASH_ALGORITHMS[options.signature_algorithm]
    h = hasher()
    h.update(body)
    bodyhash = base64.b64encode(h.digest())
    self.logger.debug("bh: %s" % bodyhash)

    sigfields = [x for x in [
        (b'v', b"1"),
        (b'a', options.signature_algorithm),
        (b'c', canon_policy.to_c_value()),
        (b'd', domain),
        options.identity is not None and (b'i', options.identity),
        options.body_length_limit is not None and
            (b'l', str(len(body)).encode('ascii')),
        (b's', options.selector),
        (b'h', b":".join(include_headers)),
        (b'bh', bodyhash),
    ] if x]

    # b= starts its own line; appending the signature refolds only
    # that line.
    sig_value = fold(b"; ".join(b"=".join(x) for x in sigfields) + b";")
    sig_value += b"\r\n b="
    dkim_header = (b'DKIM-Signature', b' ' + sig_value)

    h = hasher()
    signed_headers = hash_headers(
        h, canon_policy, self.message.headers, include_headers,
        dkim_header)
    self.logger.debug("sign headers: %r" % signed_headers)
    for name, value in signed_headers:
        if name.lower() == b'from' and not value.strip():
            raise SigningError("The From header field is empty")

    try:
        sig2 = signer(h, key.key)
    except DigestTooLargeError:
        raise CryptoError("digest too large for modulus")
    except SignatureError as e:
        raise CryptoError("signing failed: %s" % e)
    b64sig = base64.b64encode(bytes(sig2))
    sig_value = fold(sig_value + b64sig)

    self.include_headers = include_headers
    self.signed_headers = signed_headers
    self.signature_fields = dict(sigfields + [(b'b', b64sig)])
    return SignedMessage(
        b'DKIM-Signature: ' + sig_value + b"\r\n", self.message)


def sign(message, key, options, logger=None):
    """Sign an RFC822 message.
    @param message: an L{UnsignedMessage}, or RFC822 formatted bytes
    (with either \\n or \\r\\n line endings)
    @param key: a L{PrivateKey}
    @param options: L{SignOptions} naming domain, selector, algorithm,
    canonicalization and the header fields to sign
    @param logger: a logger to which debug info will be written (default None)
    @return: L{SignedMessage}; its signature attribute is the DKIM-Signature
    header field terminated by \\r\\n
    @raise DKIMException: when the message, options, or key are badly formed.
    """
    d = DKIM(message, logger=logger)
    return d.sign(key, options)

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

import re

__all__ = [
    'canonicalize_body',
    'canonicalize_header',
    'CanonicalizationPolicy',
    'InvalidCanonicalizationPolicyError',
    'Relaxed',
    'Simple',
    ]


class InvalidCanonicalizationPolicyError(Exception):
    """The c= value could not be parsed."""
    pass


def strip_trailing_lines(content):
    """Remove every CRLF at the very end of content, including the last
    line's own terminator."""
    end = len(content)
    while end >= 2 and content[end - 2:end] == b"\r\n":
        end -= 2
    return content[:end]


def unfold_header_value(content):
    return re.sub(b"\r\n", b"", content)


def compress_whitespace(content):
    return re.sub(b"[\\x09\\x20]+", b" ", content)


def strip_trailing_whitespace(content):
    # End of every line, and the end of a body lacking a final CRLF.
    return re.sub(b"[\\x09\\x20]+(\r\n|\\Z)", b"\\1", content)


class Simple:
    """Class that represents the "simple" canonicalization algorithm."""

    name = b"simple"

    @staticmethod
    def canonicalize_headers(headers):
        # No changes to headers, other than terminating each with CRLF.
        return [
            (x[0], x[1] if x[1].endswith(b"\r\n") else x[1] + b"\r\n")
            for x in headers]

    @staticmethod
    def canonicalize_body(body):
        # Ignore all empty lines at the end of the message body.  An empty
        # body canonicalizes to a single CRLF.
        return strip_trailing_lines(body) + b"\r\n"


class Relaxed:
    """Class that represents the "relaxed" canonicalization algorithm."""

    name = b"relaxed"

    @staticmethod
    def canonicalize_headers(headers):
        # Convert all header field names to lowercase.
        # Unfold all header lines.
        # Compress WSP to single space.
        # Remove all WSP at the start or end of the field value (strip).
        return [
            (x[0].strip().lower(),
             compress_whitespace(unfold_header_value(x[1])).strip(b"\x09\x20")
             + b"\r\n")
            for x in headers]

    @staticmethod
    def canonicalize_body(body):
        # Compress non-line-ending WSP to single space.
        compressed_wsp = compress_whitespace(body)
        # Remove all trailing WSP at end of lines.
        removed_trailing_wsp = strip_trailing_whitespace(compressed_wsp)
        # Ignore all empty lines at the end of the message body.
        removed_trailing_lines = strip_trailing_lines(removed_trailing_wsp)
        # An empty body stays empty, anything else ends with one CRLF.
        if not removed_trailing_lines:
            return b""
        return removed_trailing_lines + b"\r\n"


ALGORITHMS = dict((c.name, c) for c in (Simple, Relaxed))


def algorithm(mode):
    """Look up a canonicalization algorithm by name (bytes or str)."""
    if isinstance(mode, str):
        mode = mode.encode('ascii')
    try:
        return ALGORITHMS[mode.lower()]
    except KeyError:
        raise InvalidCanonicalizationPolicyError(mode)


def canonicalize_header(name, value, mode):
    """Canonicalize one header field.

    >>> canonicalize_header(b'Subject', b'  Hello\\r\\n  World \\r\\n', 'relaxed')
    (b'subject', b'Hello World\\r\\n')
    >>> canonicalize_header(b'Subject', b' Hello\\r\\n', 'simple')
    (b'Subject', b' Hello\\r\\n')
    """
    return algorithm(mode).canonicalize_headers([(name, value)])[0]


def canonicalize_body(body, mode):
    """Canonicalize a message body.

    >>> canonicalize_body(b'hi  there \\r\\n\\r\\n', 'relaxed')
    b'hi there\\r\\n'
    >>> canonicalize_body(b'', 'relaxed')
    b''
    >>> canonicalize_body(b'', 'simple')
    b'\\r\\n'
    """
    return algorithm(mode).canonicalize_body(body)


class CanonicalizationPolicy:

    def __init__(self, header_algorithm, body_algorithm):
        self.header_algorithm = header_algorithm
        self.body_algorithm = body_algorithm

    @classmethod
    def from_c_value(cls, c):
        """Construct the canonicalization policy described by a c= value.

        May raise an C{InvalidCanonicalizationPolicyError} if the given
        value is invalid.

        @param c: c= value from a DKIM-Signature header field, or None
        @return: a L{CanonicalizationPolicy}
        """
        if c is None:
            c = b'simple/simple'
        m = c.split(b'/')
        if len(m) not in (1, 2):
            raise InvalidCanonicalizationPolicyError(c)
        if len(m) == 1:
            m.append(b'simple')
        can_headers, can_body = m
        return cls(algorithm(can_headers), algorithm(can_body))

    def to_c_value(self):
        return b'/'.join(
            (self.header_algorithm.name, self.body_algorithm.name))

    def canonicalize_headers(self, headers):
        return self.header_algorithm.canonicalize_headers(headers)

    def canonicalize_body(self, body):
        return self.body_algorithm.canonicalize_body(body)

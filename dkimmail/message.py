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

"""Unsigned and signed RFC5322 messages.

Header fields are kept as (name, value) pairs of bytes, exactly as they
appear on the wire: the value is everything after the colon, including
leading whitespace, folding and the terminating CRLF.  The body is a CRLF
separated byte string.
"""

import collections
import email.message
import email.policy
import email.utils
import re

from dkimmail.errors import ValidationError

__all__ = [
    'build',
    'rfc822_parse',
    'SignedMessage',
    'UnsignedMessage',
    ]

RE_HEADER_NAME = re.compile(br"[\x21-\x39\x3b-\x7e]+\Z")
# CRLF is only allowed when it folds onto a continuation line.
RE_BAD_LINEBREAK = re.compile(br"\r(?!\n)|(?<!\r)\n|\r\n(?![\x09\x20])")
RE_ANY_LINEBREAK = re.compile(r"[\r\n]")

#: The mbox separator line that may precede the header.
RE_MBOX_FROM = re.compile(br"From +[^:\s]")


def rfc822_parse(message):
    """Parse a message in RFC822 format.

    @param message: The message in RFC822 format. Either CRLF or LF is an
    accepted line separator.
    @return: Returns a tuple of (headers, body) where headers is a list of
    (name, value) pairs.  The body is a CRLF-separated string.
    """
    headers = []
    lines = re.split(b"\r?\n", message)
    i = 0
    while i < len(lines):
        if len(lines[i]) == 0:
            # End of headers, return what we have plus the body, excluding
            # the blank line.
            i += 1
            break
        if lines[i][:1] in (b"\x09", b"\x20"):
            if not headers:
                raise ValidationError(
                    "Continuation line before first header: %r" % lines[i])
            headers[-1][1] += lines[i] + b"\r\n"
        else:
            m = re.match(br"([\x21-\x7e]+?):", lines[i])
            if m is not None:
                headers.append([m.group(1), lines[i][m.end(0):] + b"\r\n"])
            elif i == 0 and RE_MBOX_FROM.match(lines[i]):
                pass
            else:
                raise ValidationError(
                    "Unexpected characters in RFC822 header: %r" % lines[i])
        i += 1
    return ([tuple(h) for h in headers], b"\r\n".join(lines[i:]))


class UnsignedMessage(collections.namedtuple(
        'UnsignedMessage', ['headers', 'body'])):
    """An ordered list of header fields plus a body.  Never mutated."""

    __slots__ = ()

    def __new__(cls, headers, body=b''):
        headers = tuple((name, value) for name, value in headers)
        for name, value in headers:
            if RE_HEADER_NAME.match(name) is None:
                raise ValidationError("Invalid header field name: %r" % name)
            if not value.endswith(b"\r\n"):
                raise ValidationError(
                    "%s header field is not CRLF terminated"
                    % name.decode('ascii'))
            if RE_BAD_LINEBREAK.search(value[:-2]):
                raise ValidationError(
                    "%s header field contains a line break"
                    % name.decode('ascii'))
        return super(UnsignedMessage, cls).__new__(cls, headers, body)

    @classmethod
    def parse(cls, data):
        """Build from raw RFC822 bytes (CRLF or LF line endings)."""
        headers, body = rfc822_parse(data)
        return cls(headers, body)

    def get_all(self, name):
        """Return the values of every field called name, top to bottom."""
        name = name.lower()
        return [v for k, v in self.headers if k.lower() == name]

    def as_bytes(self):
        return (b"".join(k + b":" + v for k, v in self.headers)
                + b"\r\n" + self.body)


class SignedMessage(collections.namedtuple(
        'SignedMessage', ['signature', 'message'])):
    """An L{UnsignedMessage} with its DKIM-Signature header field.

    signature is the complete header field line, terminated by CRLF.
    """

    __slots__ = ()

    def as_bytes(self):
        return self.signature + self.message.as_bytes()


def _domain_of(address):
    addr = email.utils.parseaddr(address)[1]
    if '@' in addr:
        return addr.rsplit('@', 1)[1]
    return None


def build(sender, recipient, subject, body, date=None, message_id=None):
    """Compose a text/plain message.

    Date and Message-ID are generated when not given.  Header values with
    embedded line breaks raise L{ValidationError}.

    @return: L{UnsignedMessage}
    """
    for name, value in (('From', sender), ('To', recipient),
                        ('Subject', subject), ('Date', date),
                        ('Message-ID', message_id)):
        if value is not None and RE_ANY_LINEBREAK.search(value):
            raise ValidationError(
                "%s header value must not contain line breaks" % name)
    if date is None:
        date = email.utils.formatdate(localtime=True)
    if message_id is None:
        message_id = email.utils.make_msgid(domain=_domain_of(sender))

    msg = email.message.EmailMessage(policy=email.policy.SMTP)
    msg['From'] = sender
    msg['To'] = recipient
    msg['Subject'] = subject
    msg['Date'] = date
    msg['Message-ID'] = message_id
    msg.set_content(body, charset='utf-8', cte='quoted-printable')
    return UnsignedMessage.parse(msg.as_bytes())

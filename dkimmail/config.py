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

"""Command line configuration for dkimsend."""

import argparse
import collections

from dkimmail.errors import ConfigError

__all__ = [
    'Config',
    'make_parser',
    'parse_args',
    ]

DEFAULT_SUBJECT = "Ping, now please pong"
DEFAULT_MESSAGE = "こんにちは、世界！"


Config = collections.namedtuple('Config', [
    'selector', 'domain', 'key_path', 'host', 'recipient', 'sender',
    'subject', 'body', 'header_canonicalization', 'body_canonicalization',
    'signature_algorithm', 'include_headers', 'body_length_limit',
    'identity', 'stdout', 'verbose'])


def make_parser():
    parser = argparse.ArgumentParser(
        prog='dkimsend', allow_abbrev=False,
        description='Sign an email message with DKIM and send it over SMTP.')
    parser.add_argument('-signselect', dest='selector', default='default',
                        help='DKIM Selector')
    parser.add_argument('-signdomain', dest='domain', default='',
                        help='DKIM Domain')
    parser.add_argument('-signkey', dest='key_path', default='',
                        help='Private key to use for DKIM signing')
    parser.add_argument('-host', dest='host', default='',
                        help='SMTP domain and port to send email to')
    parser.add_argument('-to', dest='recipient', default='',
                        help='Receiver email address')
    parser.add_argument('-from', dest='sender', default='',
                        help='Sender email address')
    parser.add_argument('-subject', dest='subject', default=DEFAULT_SUBJECT,
                        help='Subject of the Message')
    parser.add_argument('-msg', dest='body', default=DEFAULT_MESSAGE,
                        help='Message to send')
    parser.add_argument('--hcanon', choices=['simple', 'relaxed'],
                        default='relaxed',
                        help='Header canonicalization algorithm: default=relaxed')
    parser.add_argument('--bcanon', choices=['simple', 'relaxed'],
                        default='relaxed',
                        help='Body canonicalization algorithm: default=relaxed')
    parser.add_argument('--signalg', choices=['rsa-sha256', 'ed25519-sha256'],
                        default='rsa-sha256',
                        help='Signature algorithm: default=rsa-sha256')
    parser.add_argument('--headers', default='from:to:subject',
                        help='Colon separated header fields to sign: '
                        'default=from:to:subject')
    parser.add_argument('--length', type=int, default=None,
                        help='Sign only this many octets of the body (l= tag)')
    parser.add_argument('--identity', help='Optional value for i= tag.')
    parser.add_argument('--stdout', action='store_true',
                        help='Write the signed message to stdout instead of '
                        'sending it')
    parser.add_argument('--verbose', action='store_true',
                        help='Log debugging information to stderr')
    return parser


def parse_args(argv=None):
    """Parse argv into a L{Config}.

    @raise ConfigError: naming the first mandatory flag left empty
    """
    args = make_parser().parse_args(argv)
    mandatory = [
        ('signselect', args.selector),
        ('signdomain', args.domain),
        ('host', args.host or args.stdout),
        ('to', args.recipient),
        ('from', args.sender),
        ('signkey', args.key_path),
    ]
    for flag, value in mandatory:
        if not value:
            raise ConfigError("-%s not set" % flag)
    include_headers = [x.strip() for x in args.headers.split(':')
                       if x.strip()]
    if not include_headers:
        raise ConfigError("--headers names no header fields")
    if args.length is not None and args.length < 0:
        raise ConfigError("--length must not be negative")
    return Config(
        selector=args.selector,
        domain=args.domain,
        key_path=args.key_path,
        host=args.host,
        recipient=args.recipient,
        sender=args.sender,
        subject=args.subject,
        body=args.body,
        header_canonicalization=args.hcanon,
        body_canonicalization=args.bcanon,
        signature_algorithm=args.signalg,
        include_headers=tuple(include_headers),
        body_length_limit=args.length,
        identity=args.identity,
        stdout=args.stdout,
        verbose=args.verbose,
    )

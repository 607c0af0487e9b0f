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

"""Hand a signed message to an SMTP server."""

import smtplib

from dkimmail.errors import TransportError
from dkimmail.util import get_default_logger

__all__ = [
    'deliver',
    'split_address',
    ]

SMTP_PORT = 25


def split_address(server_address):
    """Split host:port, defaulting the port to 25.

    >>> split_address('mx.example.com:2525')
    ('mx.example.com', 2525)
    >>> split_address('[::1]:25')
    ('::1', 25)
    >>> split_address('mx.example.com')
    ('mx.example.com', 25)
    """
    host, sep, port = server_address.rpartition(':')
    if not sep or host.count(':') and not host.startswith('['):
        host, port = server_address, SMTP_PORT
    try:
        port = int(port)
    except ValueError:
        raise ValueError("invalid port in %r" % server_address)
    if host.startswith('[') and host.endswith(']'):
        host = host[1:-1]
    if not host or not 0 < port < 65536:
        raise ValueError("invalid server address %r" % server_address)
    return host, port


def deliver(server_address, sender, recipients, data, timeout=None,
            logger=None):
    """Send data in a single plain SMTP session.

    @param server_address: host:port of the receiving server
    @param sender: MAIL FROM address
    @param recipients: list of RCPT TO addresses
    @param data: the signed message bytes
    @param timeout: socket timeout in seconds (default: no timeout)
    @raise TransportError: carrying the text of the underlying failure
    """
    if logger is None:
        logger = get_default_logger()
    try:
        host, port = split_address(server_address)
    except ValueError as e:
        raise TransportError(str(e))
    kwargs = {}
    if timeout is not None:
        kwargs['timeout'] = timeout
    logger.info("delivering to %s:%d for %s", host, port,
                ", ".join(recipients))
    try:
        with smtplib.SMTP(host, port, **kwargs) as smtp:
            refused = smtp.sendmail(sender, recipients, data)
    except (smtplib.SMTPException, OSError) as e:
        raise TransportError(str(e))
    if refused:
        logger.warning("recipients refused: %r", refused)
    return refused

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

"""Load key, build message, sign, deliver."""

import logging
import sys

from dkimmail import (
    build,
    DKIMException,
    load_ed25519_key,
    load_private_key,
    sign,
    SigningError,
    SignOptions,
    )
from dkimmail.config import parse_args
from dkimmail.errors import ConfigError
from dkimmail.transport import deliver
from dkimmail.util import get_default_logger


def load_key(config, logger):
    if config.signature_algorithm == 'ed25519-sha256':
        return load_ed25519_key(config.key_path)
    return load_private_key(config.key_path, logger=logger)


def sign_options(config):
    try:
        return SignOptions(
            config.domain, config.selector,
            signature_algorithm=config.signature_algorithm,
            header_canonicalization=config.header_canonicalization,
            body_canonicalization=config.body_canonicalization,
            include_headers=config.include_headers,
            body_length_limit=config.body_length_limit,
            identity=config.identity)
    except SigningError as e:
        raise ConfigError(str(e))


def run(config, logger):
    """Sign and send one message.  Nothing is sent unless signing succeeds.

    @return: the signed message bytes
    """
    key = load_key(config, logger)
    message = build(config.sender, config.recipient, config.subject,
                    config.body)
    signed = sign(message, key, sign_options(config), logger=logger)
    data = signed.as_bytes()
    if config.stdout:
        out = getattr(sys.stdout, 'buffer', sys.stdout)
        out.write(data)
        out.flush()
    else:
        deliver(config.host, config.sender, [config.recipient], data,
                logger=logger)
    return data


def main(argv=None):
    try:
        config = parse_args(argv)
    except ConfigError as e:
        print(e, file=sys.stderr)
        return 1
    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.WARNING,
        format='%(name)s: %(levelname)s: %(message)s')
    logger = get_default_logger()
    try:
        run(config, logger)
    except DKIMException as e:
        print(e, file=sys.stderr)
        return 1
    if not config.stdout:
        print("mail sent successfully")
    return 0

import hashlib
import logging
import os
import re
from typing import Any, Mapping

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r'\$\{([^}]+)}')


def envsubst(value: Any, env: Mapping[str, str] = None) -> Any:
    """
    Replace `${VAR_NAME}` placeholders in `value` with the values of the
    corresponding keys of `env` (by default, `os.environ`). Lists and
    dictionaries are processed recursively, returning new objects; any other
    non-string values are returned as is.

    Placeholders with no corresponding key in `env` are left in place, and
    a warning is logged.

    ```pycon
    >>> envsubst({'REST_ENDPOINT': 'http://${HOST}/rest'}, {'HOST': 'localhost:8080'})
    {'REST_ENDPOINT': 'http://localhost:8080/rest'}
    ```
    """
    if env is None:
        env = os.environ
    if isinstance(value, str):
        def replace(match: re.Match) -> str:
            name = match.group(1)
            if name not in env:
                logger.warning(f'Environment variable ${{{name}}} not found')
                return match.group(0)
            return env[name]

        return PLACEHOLDER.sub(replace, value)
    elif isinstance(value, list):
        return [envsubst(v, env) for v in value]
    elif isinstance(value, dict):
        return {k: envsubst(v, env) for k, v in value.items()}
    else:
        return value


def sha1_checksum(content: str | bytes) -> str:
    """Returns the hex-encoded SHA-1 digest of `content`. String content is
    encoded as UTF-8 first, since that is how it is sent to the repository.

    ```pycon
    >>> sha1_checksum('foo')
    '0beec7b5ea3f0fdbc95d0dd47f3c5bc275da8a33'
    ```
    """
    if isinstance(content, str):
        content = content.encode('utf-8')
    return hashlib.sha1(content).hexdigest()

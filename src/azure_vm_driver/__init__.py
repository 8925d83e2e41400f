"""Service management client for creating and operating virtual machines.

Shared modules (common, config, errors, transport) sit directly in this
package; request documents live in `documents` and API clients in
`management`.
"""

__version__ = '0.1.0'

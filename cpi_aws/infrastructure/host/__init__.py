"""
CPI Host Shim

Architectural Intent:
- Host-facing surfaces: the in-process extension object and the
  line-delimited JSON stdio transport
"""

from cpi_aws.infrastructure.host.extension import Ec2Extension, get_extension
from cpi_aws.infrastructure.host.stdio_host import handle_line, run_stdio

__all__ = [
    "Ec2Extension",
    "get_extension",
    "handle_line",
    "run_stdio",
]

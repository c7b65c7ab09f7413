"""External load balancer image, config location and config rendering."""

from __future__ import annotations

from dataclasses import dataclass, field

__all__ = ["IMAGE", "CONFIG_PATH", "ConfigData", "config"]

IMAGE = "kindest/haproxy:v20200708-548e36db"
"""The load balancer image:tag."""

CONFIG_PATH = "/usr/local/etc/haproxy/haproxy.cfg"
"""Path of the config file inside the image."""

_PREAMBLE = """\
# generated by kind
global
  log /dev/log local0
  log /dev/log local1 notice
  daemon

resolvers docker
  nameserver dns 127.0.0.11:53

defaults
  log global
  mode tcp
  option dontlognull
  # TODO: tune these
  timeout connect 5000
  timeout client 50000
  timeout server 50000
  # allow to boot despite dns don't resolve backends
  default-server init-addr none

frontend control-plane
"""

_BACKEND_HEADER = """\
backend kube-apiservers
  option httpchk GET /healthz
  # TODO: we should be verifying (!)
"""


@dataclass
class ConfigData:
    """Values the load balancer config is rendered from."""

    control_plane_port: int
    backend_servers: dict[str, str] = field(default_factory=dict)
    ipv6: bool = False


def config(data: ConfigData) -> str:
    """Render the haproxy config for data; servers are ordered by name."""
    port = data.control_plane_port
    family = "ipv6" if data.ipv6 else "ipv4"
    ipv6_bind = f"bind :::{port};" if data.ipv6 else ""
    servers = "".join(
        f"\n  server {name} {address} check check-ssl verify none"
        f" resolvers docker resolve-prefer {family}"
        for name, address in sorted(data.backend_servers.items())
    )
    frontend = f"  bind *:{port}\n  {ipv6_bind}\n  default_backend kube-apiservers\n\n"
    return _PREAMBLE + frontend + _BACKEND_HEADER + f"  {servers}\n"
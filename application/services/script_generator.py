# application/services/script_generator.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from domain.run_spec import RunSpec

DEFAULT_GATEWAY_ALIAS = "host.docker.internal"
LOOPBACK_HOSTS: Tuple[str, ...] = ("localhost", "127.0.0.1")

_SCRIPT_TEMPLATE = """\
import http from 'k6/http';
import {{ check, sleep }} from 'k6';

export const options = {{
  vus: {vus},
  duration: '{duration}s',
}};

export default function () {{
  const url = '{url}';
  const method = '{method}';
  const payload = {payload};
  const params = {{
    headers: {{ 'Content-Type': 'application/json' }},
  }};
  const bodyToSend = (method === 'POST' || method === 'PUT') ? JSON.stringify(payload) : null;
  const res = http.request(method, url, bodyToSend, params);
  check(res, {{ 'status is 200': (r) => r.status == 200 }});
  sleep(1);
}}
"""


@dataclass(frozen=True)
class K6ScriptGenerator:
    """
    Render a k6 script for a RunSpec.

    The script runs inside the container's own network namespace, so loopback
    hosts in the target URL are rewritten to the gateway alias that points
    back at the docker host.
    """

    gateway_alias: str = DEFAULT_GATEWAY_ALIAS

    def generate(self, spec: RunSpec) -> str:
        body = spec.effective_body()
        return _SCRIPT_TEMPLATE.format(
            vus=spec.virtual_users,
            duration=spec.duration,
            url=_js_single_quoted(self.container_url(spec.target_url)),
            method=spec.method.value,
            payload=body if body is not None else "null",
        )

    def container_url(self, url: str) -> str:
        for host in LOOPBACK_HOSTS:
            url = url.replace(host, self.gateway_alias)
        return url


def _js_single_quoted(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )

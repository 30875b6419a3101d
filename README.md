# mailvet

Email domain validation as a library and as a small HTTP service.

Given a domain (or an address, from which the domain is taken), mailvet tells you:

- whether the domain is well formed and has A/AAAA records,
- whether it has MX records,
- whether it is on a list of disposable mail providers (Bloom-filter lookup),
- whether it looks like a typo of a major provider (`gmial.com` → `gmail.com`),
- how its SPF, DMARC and DKIM records are set up,
- and an overall risk score from 0 to 100 with a level of `low`, `medium`,
  `high` or `critical`.

## Installation

```
pip install mailvet
```

For running the test suite:

```
pip install "mailvet[test]"
```

## Running the server

```
mailvet
```

Options:

- `--config PATH` – TOML configuration file to read if it exists
  (default `Config.toml`).
- `--disposable-list PATH` – file with one disposable domain per line
  (default `list.txt`). Blank lines and lines starting with `#` are skipped.
  The server does not start if this file cannot be read or holds no valid
  domain.

The server listens on `0.0.0.0:3000` by default and offers:

| Method | Path                        | Purpose                                           |
|--------|-----------------------------|---------------------------------------------------|
| GET    | `/v1/validate?domain=`      | Full validation with DNS, authentication and risk |
| GET    | `/v1/fast-validate?domain=` | Format, disposable and A/AAAA check only          |
| GET    | `/health`                   | Liveness check                                    |
| GET    | `/ready`                    | Readiness check (runs a validation of `test.com`) |
| GET    | `/metrics`                  | Prometheus text metrics about the pipeline        |
| GET    | `/admin/stats`              | Pipeline statistics as JSON                       |
| POST   | `/admin/cache/clear`        | Clear the DNS cache                               |

Example:

```
curl "http://localhost:3000/v1/validate?domain=user@example.com"
```

An address such as `user@example.com` is accepted; the part after the last
`@` is validated. An empty value or one longer than 253 bytes is rejected.
Errors come back as JSON with `error`, `error_code`, `request_id` and
`timestamp`; an invalid domain gives status 400. Responses are gzip-compressed
when the client accepts it, and CORS allows any origin for GET and POST.

### Configuration

Settings are read, in increasing order of priority, from built-in defaults,
the TOML file named by `--config` if it exists, and environment variables
with the `EMAIL_API_` prefix. The TOML file has the sections `server`,
`validation`, `observability` and `security`, whose keys are the fields of
`ServerConfig`, `ValidationSettings`, `ObservabilityConfig` and
`SecurityConfig` in `mailvet.config`:

```toml
[server]
port = 8080

[validation]
dns_timeout_ms = 1000
enable_dmarc_analysis = true

[observability]
log_level = "debug"
json_logs = true
```

Environment variable names are lower-cased after the prefix and split on
every underscore into section and key, so only keys without an underscore
can be set this way, for example:

```
EMAIL_API_SERVER_PORT=8080
EMAIL_API_SERVER_HOST=127.0.0.1
```

Everything else belongs in the TOML file. `mailvet.config.load_config(path,
environ)` performs this loading and raises `ConfigurationError` on a value
of the wrong type.

## Using the library

```python
import asyncio

from mailvet.models import ValidationConfig
from mailvet.pipeline import ValidationPipeline

disposable_list = "10minutemail.com\nguerrillamail.com\n"

async def check() -> None:
    pipeline = ValidationPipeline(ValidationConfig(), disposable_list)
    result = await pipeline.validate_domain("example.com")
    print(result.is_valid, result.is_disposable, result.risk_score)

    quick = await pipeline.fast_validate_domain("guerrillamail.com")
    print(quick.is_disposable)

asyncio.run(check())
```

`ValidationPipeline` also accepts a `resolver` argument, any object with the
lookup coroutines of `mailvet.resolver.DnsResolver`, which is useful in
tests. Input containing `@` raises `InvalidDomainError`.

The building blocks are usable on their own:

```python
from mailvet.deliverability import analyze_dmarc_record, analyze_spf_record
from mailvet.heuristics import TypoDetector

TypoDetector().check_typo("outlok.com")          # "outlook.com"
analyze_spf_record("v=spf1 -all").is_strict       # True
analyze_dmarc_record("v=DMARC1; p=quarantine; pct=50").percentage  # 50
```

- `mailvet.disposable.DisposableDetector` – Bloom-filter lookups of
  disposable domains (`from_list_txt`, `is_disposable`).
- `mailvet.privacy.PrivacyProcessor` – salted SHA-256 hashing of local parts
  (`hash_local_part`, `process_email`) and the domain-only input check.
- `mailvet.resolver.DnsResolver` – asynchronous A/AAAA, MX and TXT lookups
  against Cloudflare's public resolvers, with a TTL-bounded cache, plus
  SPF, DMARC and common-selector DKIM record retrieval.
- `mailvet.api` – response records, `RiskLevel` and the conversion
  functions used by the HTTP handlers.

## Risk levels

| Score  | Level      |
|--------|------------|
| 0–25   | low        |
| 26–50  | medium     |
| 51–75  | high       |
| 76–100 | critical   |

Malformed domains score 100, domains without A/AAAA records 90 and
disposable domains 85. Otherwise the score adds 30 for a likely typo, 15 for
missing MX records, up to 20 from the SPF/DMARC/DKIM analysis and 10 when
the SMTP check fails, capped at 100.

## What it does not do

- There are no authenticated endpoints and no login: every route is open.
- The SMTP check does not connect to any mail server; it only forms the
  host name `smtp.<domain>` and always reports it as accessible.
- The `security` settings (rate limiting, body size limits, CORS origins,
  privacy salt) are loaded but not applied by the server, and of the
  `observability` settings only `json_logs` and `log_level` are used; there
  is no tracing export.
- `/metrics` reports only fixed pipeline figures, not request counts or
  latencies.
- No disposable domain list ships with the package; supply your own.
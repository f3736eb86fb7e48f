# bubbleadmin

Building blocks for a multi-tenant admin backend. It is a library: the
pieces a service needs underneath its request handlers, each usable on its
own.

## Modules

- `bubbleadmin.env` – the process-wide environment (`Env.DEV`, `Env.TEST`,
  `Env.PROD`). `init(name)` sets it once; later calls are ignored. The
  default is `dev`. `is_dev()`, `is_test()`, `is_prod()` and `get()` read it.
- `bubbleadmin.snowflake` – `Snowflake(worker_id, *, epoch, worker_id_bits,
  sequence_bits, max_backoff_ms)`, a thread-safe 64-bit time-ordered ID
  generator. Worker and sequence bits may add up to at most 22. `next_id()`
  waits out a small clock step back and raises `ClockMovedBackwardsError`
  for a larger one. `IDGenerator` is the protocol it satisfies.
- `bubbleadmin.authctx` – per-request identity (user, tenant, department,
  data scope, auth version) held in context variables. `auth_context(info)`
  binds a whole `ContextInfo`; `with_user_id`, `with_tenant_id`,
  `with_dept_id`, `with_data_scope` and `with_auth_version` bind one value;
  the `get_*` functions and `get_context_info()` read them (0 or "" when
  unset). `get_greater_scope(old, new)` returns the wider scope of
  `SELF` < `DEPT` < `DEPT_SUB` < `ALL`.
- `bubbleadmin.pathaccess` – `PathAccessConfig`, `match` and
  `is_public_path`: an operation is public if it is listed exactly, or if a
  listed entry ending in `/` is a prefix of it.
- `bubbleadmin.errors` – `ServiceError(code, reason, message, cause)` with
  `bad_request`, `unauthorized`, `forbidden` and `internal_server`
  helpers; `from_exception` finds a `ServiceError` in a cause chain or wraps
  any other exception as code 500.
- `bubbleadmin.translator` – `FieldValidationError(field, reason)` and
  `translate(err)`, which turns validation failures into Chinese messages.
- `bubbleadmin.debuginfo` – a per-request debug mapping: `debug_scope()`,
  `add_debug_value(key, value)`, `from_context()`; `is_debug()` is true
  outside `prod`.
- `bubbleadmin.render` – `encode_response(data)` and `encode_error(err)`
  build a `RenderedResponse` whose body is the JSON `Reply`
  `{code, message, debug, data}`. Successes get status 200 and code 0,
  with debug info outside `prod`; errors get their own code as status, or
  500 for codes of 500 and above, and `INVALID_ARGUMENT` errors are
  translated.
- `bubbleadmin.casbin_policy` – `Enforcer`, a thread-safe domain RBAC with
  data scopes, loaded from `UserRoleRow` and `RolePermRow` rows. Holding
  `admin` in domain `1` allows everything. `authorize(enforcer, perm_codes,
  user_id, tenant_id)` returns the data scope of the first granted code, or
  raises a forbidden `ServiceError`.
- `bubbleadmin.tenant_perms` – `group_tenant_package_perms` and
  `group_api_permissions` group permission codes per tenant and per API
  path.
- `bubbleadmin.scopes` – an immutable `Query` description and the scopes
  `data_scope()`, `tenant_scope()`, `paginate(page, page_size)` (page size
  clamped to 100, default 10), `sort_by(field, ascending)`,
  `only_trashed` and `is_on_sale`, applied with `Query.apply`.
- `bubbleadmin.tokens` – `UserToken` records (JSON via `to_json` /
  `from_json`) and `RedisTokenStore`, keeping tokens under
  `jwt:token:{jti}` with a per-user set `jwt:user:{id}:tokens`; it saves,
  gets, deletes, lists and blocks (revokes) a user's tokens.
  `get_token` raises `TokenNotFoundError`.
- `bubbleadmin.caches` – `CaptchaStore` (answers under `captcha:{id}` for
  ten minutes, case-insensitive `verify`) and `OtpCache` (`set`, `get`
  raising `OtpCacheMiss`, `delete`, `exists`, `set_nx`, and `incr`, which
  increments and resets the expiry in one transaction).
- `bubbleadmin.ws` – the websocket `Message` envelope (`new_message`,
  `parse_message`) and an asyncio `Hub` that keeps one `Client` per user,
  queues outgoing messages, sends pings and closes idle or oversized
  connections. Connections are any object with async `send`, `recv`,
  `ping` and `close`.
- `bubbleadmin.chat` – `ChatRepo` (logs messages and presence),
  `ChatService.handle_chat` (acknowledges the sender, pushes to the
  receiver) and `WebsocketService`, which authenticates a token through a
  given parser and dispatches the `chat` and `ping` actions.
- `bubbleadmin.cron` – six-field, seconds-first `CronSchedule` with
  `parse` and `next_after`; `BaseJob`, `HelloJob` (logs a greeting every
  minute), `daily_at` and the `EVERY_MINUTE_SPEC`, `EVERY_FIVE_MINUTES_SPEC`
  and `DAILY_SPEC` specs. `CronServer` runs jobs on a background thread;
  `run_job` logs failures instead of raising. `new_cron_server(hello)`
  returns a server with `HelloJob` registered.
- `bubbleadmin.storage` – the `Storage` protocol, `OssConfig` and
  `LocalStorage`, which writes objects as files below the bucket directory
  (default `uploads`) and refuses keys that leave it. `new_storage(config)`
  picks the backend.
- `bubbleadmin.email` – `MockEmailSender`, and `SmtpEmailSender`, which
  renders `<template>.html` with Jinja2 from a templates directory and
  sends it over SMTP with up to three attempts and exponential backoff.
  `new_email_sender` returns the mock in `dev`.
- `bubbleadmin.sms` – `SmsConfig`, `MockSmsSender` and `new_sms_sender`.
- `bubbleadmin.models` – dataclasses for the system tables (`SysUser`,
  `SysRole`, `SysPermission`, `SysTenant`, `SysPackage`, `SysDept` and the
  link tables). `before_create()` assigns an ID from the generator set with
  `set_id_generator`, stamps creation times and, for owned models, fills
  tenant, creator and department from `authctx`.

The Redis-backed classes take any client with the redis-py method names
(`get`, `set` with `px`/`ex`/`nx`, `delete`, `exists`, `sadd`, `smembers`,
`srem`, `pipeline`); the package itself does not depend on a Redis library.

## Examples

Generating IDs:

```python
from bubbleadmin.snowflake import Snowflake

ids = Snowflake(1)
first = ids.next_id()
second = ids.next_id()
assert second > first
```

Comparing data scopes:

```python
from bubbleadmin.authctx import get_greater_scope

assert get_greater_scope("SELF", "DEPT_SUB") == "DEPT_SUB"
assert get_greater_scope("ALL", "DEPT") == "ALL"
```

Deciding which operations skip authentication:

```python
from bubbleadmin.pathaccess import is_public_path, path_access_config_with_public_list

config = path_access_config_with_public_list(
    ["/api.public.v1.Public/GetCaptcha", "/api.public.v1.Public/"]
)
assert is_public_path("/api.public.v1.Public/SendSmsOtp", config)
assert not is_public_path("/api.passport.v1.Passport/UserInfo", config)
```

Checking a permission and getting its data scope:

```python
from bubbleadmin.casbin_policy import Enforcer, RolePermRow, UserRoleRow, authorize

enforcer = Enforcer()
enforcer.load_policy(
    [UserRoleRow("42", "editor", "7")],
    [RolePermRow("editor", "7", "user:list", "DEPT")],
)
assert authorize(enforcer, ["user:list"], 42, 7) == "DEPT"
```

Filtering a query by the caller's data scope:

```python
from bubbleadmin.authctx import ContextInfo, auth_context
from bubbleadmin.scopes import Query, data_scope, paginate

with auth_context(ContextInfo(tenant_id=7, dept_id=3, data_scope="DEPT")):
    query = Query("orders").apply(data_scope(), paginate(2, 20))

assert query.conditions == (("tenant_id = ?", (7,)), ("dept_id = ?", (3,)))
assert (query.offset, query.limit) == (20, 20)
```

Building a websocket message:

```python
from bubbleadmin.ws import new_message, parse_message

payload = new_message("pong", {"reply": "alive"})
message = parse_message(payload)
assert message.action == "pong"
```

## What the package does not do

- It has no HTTP or gRPC server and no command to start one; the reply
  envelopes, path matching and authorization check are for use inside
  handlers of your own.
- It does not talk to a database. `Query` only describes filters, order and
  paging, and the models are plain dataclasses; `Enforcer.load_policy` and
  the grouping functions take rows you have already fetched.
- It does not issue or verify JWTs; `WebsocketService` takes a parser
  function for that, and `RedisTokenStore` only stores token records.
- It does not generate captcha images or send real text messages:
  `new_sms_sender` returns the mock sender and raises `ValueError` for the
  `aliyun` provider.
- Only local file storage exists; `new_storage` raises `ValueError` for the
  `aliyun`, `qiniu` and `minio` providers.

## Running the tests

Install the `test` extra and run pytest from the project root.
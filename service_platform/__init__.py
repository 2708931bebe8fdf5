"""
Platform Access service package.

Executes calls against the upstream platform-management API with a managed
session credential. The HTTP layer that exposes these calls lives outside
this package and talks to it through ``AuthenticatedRequestExecutor``.

Structure:
- app.executor: per-call retry-after-refresh policy and the factory.
- app.auth: session credential ownership and single-flight login.
- app.adapters: outbound dispatch and response classification.
- app.models: call, response and credential data types.
"""

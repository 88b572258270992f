"""Domain-specific apply modules.

Each module exposes `apply_<domain>(state, env, hooks)` which returns a result
dict for the tx types it owns and None for everything else. Appliers mutate
`state` in place; atomicity is provided by the caller (domain_apply).
"""

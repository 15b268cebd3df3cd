"""
Boundary adapters around the policy engine.

- ffi: native-call conventions (caller allocated buffers, last error).
- bindings: host-runtime bindings exchanging JSON strings.

Adapters convert engine errors into diagnostics; they hold no domain
logic of their own.
"""

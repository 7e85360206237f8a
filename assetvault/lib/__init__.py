from assetvault.lib.hooks import HookRegistry

__all__ = ["HookRegistry"]

from .identity_service import resolve_account, resolve_accounts, get_account_phone, get_user_by_id

__all__ = ["resolve_account", "resolve_accounts", "get_account_phone", "get_user_by_id"]

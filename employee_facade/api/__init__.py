from employee_facade.api.app import create_app, router

__all__ = ["create_app", "router"]

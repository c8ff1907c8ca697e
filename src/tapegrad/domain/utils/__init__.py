from ._registry_builder import RegistryBuilder, create_registry_builder

__all__ = ["RegistryBuilder", "create_registry_builder"]

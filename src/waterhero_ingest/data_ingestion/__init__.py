from .waterhero_client import WaterHeroClient

__all__ = ["WaterHeroClient"]

"""Stage, tile, sprite, camera, collision and fixed-point 3D helpers for a retro 2D game engine."""

__version__ = "0.1.0"
__all__ = ["camera", "collision", "scene3d", "sprite", "stage", "strings", "tiles"]
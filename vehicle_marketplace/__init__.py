"""Vehicle marketplace backend: parts, mechanic services, rentals and roadside assistance."""

__version__ = "1.0.0"

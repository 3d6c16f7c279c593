"""AutoCrew core: crew table provisioning and knowledge-base document lifecycle."""

__version__ = "0.1.0"

"""Core building blocks: platform resolution, registry, worker client, files."""

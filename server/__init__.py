"""Server-side components: tiered cache, resources and the content service."""

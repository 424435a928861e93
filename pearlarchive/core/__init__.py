"""Resolution pipeline: loader, resolver, filters, ordering, overlay store and gateway."""

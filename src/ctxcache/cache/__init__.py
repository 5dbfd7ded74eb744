"""Context cache: locator, reader/migrator, writer and the record model.

Layout:
    ~/.ctxcache/
    ├── project.cache                  # Primary document, schema 2.0
    ├── project.cache.bkp              # Backup, copied after every save
    └── project_<fingerprint>.cache    # Legacy documents, migrated on load, removed on save
"""

"""
Repository package for data access layers.

`app.repositories.assets` holds the asset record repository; the backing
implementation (SQL or in-memory) is picked by `ASSET_REPOSITORY` in
`app.core.dependencies`.
"""

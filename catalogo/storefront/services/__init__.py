"""
Storefront service layer: variants, pricing, pagination, cart, media and
spreadsheet import. Modules are imported directly (``services.variants``)
so model modules can depend on the pure helpers without cycles.
"""

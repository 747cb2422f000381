"""Schema v1 - Initial database schema.

This version includes tables for:
- Marketplace items (append-only listing records)
- The item id counter, a single row locked on every new listing
"""

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'items',
            'columns': [
                {'name': 'item_id', 'type': 'INT8', 'primary_key': True},
                {'name': 'asset_ref', 'type': 'TEXT', 'nullable': False},
                {'name': 'token_id', 'type': 'DECIMAL', 'nullable': False},
                {'name': 'price', 'type': 'DECIMAL', 'nullable': False},
                {'name': 'seller', 'type': 'TEXT', 'nullable': False},
                {'name': 'sold', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'sold_at', 'type': 'TIMESTAMP'}
            ],
            'checks': [
                'price > 0',
                'item_id > 0'
            ],
            'indexes': [
                {'name': 'idx_items_seller', 'columns': ['seller']},
                {'name': 'idx_items_asset', 'columns': ['asset_ref', 'token_id']},
                {'name': 'idx_items_unsold', 'columns': ['item_id'], 'where': 'sold = false'}
            ]
        },
        {
            'name': 'item_counter',
            'columns': [
                {'name': 'id', 'type': 'INT8', 'primary_key': True},
                {'name': 'last_item_id', 'type': 'INT8', 'nullable': False, 'default': '0'}
            ]
        }
    ],
    'seed': [
        'INSERT INTO item_counter (id, last_item_id) VALUES (1, 0) ON CONFLICT (id) DO NOTHING'
    ]
}

"""Schema v1 - Initial marketplace layout.

Users keyed by wallet address, collections, riffs, stakes, tips, tipping tiers,
staking settings, tags, genres and favorites.
"""

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'users',
            'columns': [
                {'name': 'id', 'type': 'BIGSERIAL', 'primary_key': True},
                {'name': 'wallet_address', 'type': 'TEXT', 'nullable': False, 'unique': True},
                {'name': 'name', 'type': 'TEXT', 'nullable': False},
                {'name': 'bio', 'type': 'TEXT'},
                {'name': 'location', 'type': 'TEXT'},
                {'name': 'avatar', 'type': 'TEXT'},
                {'name': 'cover_image', 'type': 'TEXT'},
                {'name': 'ens_name', 'type': 'TEXT'},
                {'name': 'twitter_url', 'type': 'TEXT'},
                {'name': 'instagram_url', 'type': 'TEXT'},
                {'name': 'website_url', 'type': 'TEXT'},
                {'name': 'genres', 'type': 'TEXT[]', 'nullable': False, 'default': "'{}'"},
                {'name': 'influences', 'type': 'TEXT[]', 'nullable': False, 'default': "'{}'"},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ]
        },
        {
            'name': 'collections',
            'columns': [
                {'name': 'id', 'type': 'BIGSERIAL', 'primary_key': True},
                {'name': 'name', 'type': 'TEXT', 'nullable': False},
                {'name': 'description', 'type': 'TEXT'},
                {'name': 'cover_image', 'type': 'TEXT'},
                {'name': 'creator_id', 'type': 'INT8', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['creator_id'], 'references': 'users(id)'}
            ],
            'indexes': [
                {'name': 'idx_collections_creator', 'columns': ['creator_id']}
            ]
        },
        {
            'name': 'riffs',
            'columns': [
                {'name': 'id', 'type': 'BIGSERIAL', 'primary_key': True},
                {'name': 'title', 'type': 'TEXT', 'nullable': False},
                {'name': 'description', 'type': 'TEXT'},
                {'name': 'audio_file', 'type': 'TEXT', 'nullable': False},
                {'name': 'cover_image', 'type': 'TEXT'},
                {'name': 'duration', 'type': 'FLOAT8'},
                {'name': 'genre', 'type': 'TEXT'},
                {'name': 'mood', 'type': 'TEXT'},
                {'name': 'instrument', 'type': 'TEXT'},
                {'name': 'key_signature', 'type': 'TEXT'},
                {'name': 'time_signature', 'type': 'TEXT'},
                {'name': 'is_bargain_bin', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'price', 'type': 'NUMERIC(10,2)'},
                {'name': 'currency', 'type': 'TEXT', 'nullable': False, 'default': "'RIFF'"},
                {'name': 'royalty_percentage', 'type': 'INT8', 'nullable': False, 'default': '10'},
                {'name': 'is_stakable', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'staking_royalty_share', 'type': 'INT8', 'nullable': False, 'default': '50'},
                {'name': 'max_pool', 'type': 'INT8'},
                {'name': 'is_nft', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'token_id', 'type': 'TEXT'},
                {'name': 'contract_address', 'type': 'TEXT'},
                {'name': 'unlock_source_files', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'unlock_remix_rights', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'unlock_private_messages', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'unlock_backstage_content', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'creator_id', 'type': 'INT8', 'nullable': False},
                {'name': 'collection_id', 'type': 'INT8'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['creator_id'], 'references': 'users(id)'},
                {'columns': ['collection_id'], 'references': 'collections(id)', 'on_delete': 'SET NULL'}
            ],
            'indexes': [
                {'name': 'idx_riffs_creator', 'columns': ['creator_id']},
                {'name': 'idx_riffs_collection', 'columns': ['collection_id']},
                {'name': 'idx_riffs_created', 'columns': ['created_at']}
            ]
        },
        {
            'name': 'stakes',
            'columns': [
                {'name': 'id', 'type': 'BIGSERIAL', 'primary_key': True},
                {'name': 'user_id', 'type': 'INT8', 'nullable': False},
                {'name': 'riff_id', 'type': 'INT8', 'nullable': False},
                {'name': 'amount', 'type': 'NUMERIC(10,2)', 'nullable': False},
                {'name': 'staked_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'unlock_at', 'type': 'TIMESTAMPTZ', 'nullable': False},
                {'name': 'is_unlocked', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'royalties_earned', 'type': 'NUMERIC(10,2)', 'nullable': False, 'default': '0'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['user_id'], 'references': 'users(id)'},
                {'columns': ['riff_id'], 'references': 'riffs(id)'}
            ],
            'indexes': [
                {'name': 'idx_stakes_user', 'columns': ['user_id']},
                {'name': 'idx_stakes_riff', 'columns': ['riff_id']}
            ]
        },
        {
            'name': 'tips',
            'columns': [
                {'name': 'id', 'type': 'BIGSERIAL', 'primary_key': True},
                {'name': 'user_id', 'type': 'INT8', 'nullable': False},
                {'name': 'recipient_id', 'type': 'INT8', 'nullable': False},
                {'name': 'riff_id', 'type': 'INT8'},
                {'name': 'amount', 'type': 'NUMERIC(10,2)', 'nullable': False},
                {'name': 'currency', 'type': 'TEXT', 'nullable': False, 'default': "'RIFF'"},
                {'name': 'message', 'type': 'TEXT'},
                {'name': 'tier_id', 'type': 'INT8'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['user_id'], 'references': 'users(id)'},
                {'columns': ['recipient_id'], 'references': 'users(id)'},
                {'columns': ['riff_id'], 'references': 'riffs(id)', 'on_delete': 'SET NULL'}
            ],
            'indexes': [
                {'name': 'idx_tips_sender', 'columns': ['user_id']},
                {'name': 'idx_tips_recipient', 'columns': ['recipient_id']},
                {'name': 'idx_tips_riff', 'columns': ['riff_id']}
            ]
        },
        {
            'name': 'tipping_tiers',
            'columns': [
                {'name': 'id', 'type': 'BIGSERIAL', 'primary_key': True},
                {'name': 'user_id', 'type': 'INT8'},
                {'name': 'name', 'type': 'TEXT', 'nullable': False},
                {'name': 'amount', 'type': 'INT8', 'nullable': False},
                {'name': 'description', 'type': 'TEXT'},
                {'name': 'perks', 'type': 'TEXT[]', 'nullable': False, 'default': "'{}'"},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['user_id'], 'references': 'users(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_tipping_tiers_user', 'columns': ['user_id']}
            ]
        },
        {
            'name': 'staking_settings',
            'columns': [
                {'name': 'id', 'type': 'BIGSERIAL', 'primary_key': True},
                {'name': 'user_id', 'type': 'INT8'},
                {'name': 'default_staking_enabled', 'type': 'BOOLEAN', 'nullable': False, 'default': 'true'},
                {'name': 'default_royalty_share', 'type': 'INT8', 'nullable': False, 'default': '50'},
                {'name': 'lock_period_days', 'type': 'INT8', 'nullable': False, 'default': '90'},
                {'name': 'minimum_stake_amount', 'type': 'INT8', 'nullable': False, 'default': '100'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['user_id'], 'references': 'users(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_staking_settings_user', 'columns': ['user_id'], 'unique': True}
            ]
        },
        {
            'name': 'tags',
            'columns': [
                {'name': 'id', 'type': 'BIGSERIAL', 'primary_key': True},
                {'name': 'name', 'type': 'TEXT', 'nullable': False, 'unique': True},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ]
        },
        {
            'name': 'genres',
            'columns': [
                {'name': 'id', 'type': 'BIGSERIAL', 'primary_key': True},
                {'name': 'name', 'type': 'TEXT', 'nullable': False, 'unique': True},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ]
        },
        {
            'name': 'riff_tags',
            'columns': [
                {'name': 'id', 'type': 'BIGSERIAL', 'primary_key': True},
                {'name': 'riff_id', 'type': 'INT8', 'nullable': False},
                {'name': 'tag_id', 'type': 'INT8', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['riff_id'], 'references': 'riffs(id)', 'on_delete': 'CASCADE'},
                {'columns': ['tag_id'], 'references': 'tags(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_riff_tags_pair', 'columns': ['riff_id', 'tag_id'], 'unique': True}
            ]
        },
        {
            'name': 'favorites',
            'columns': [
                {'name': 'user_id', 'type': 'INT8', 'nullable': False},
                {'name': 'riff_id', 'type': 'INT8', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'primary_key': ['user_id', 'riff_id'],
            'foreign_keys': [
                {'columns': ['user_id'], 'references': 'users(id)', 'on_delete': 'CASCADE'},
                {'columns': ['riff_id'], 'references': 'riffs(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_favorites_riff', 'columns': ['riff_id']}
            ]
        }
    ]
}

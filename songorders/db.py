from __future__ import annotations

import json
import logging

import asyncpg

from songorders.config import settings

logger = logging.getLogger("db")

_pool: asyncpg.Pool | None = None


# Idempotent DDL. The unique constraints are load-bearing:
#   lyrics(order_id, version)   -> a concurrent generation can only land one pair
#   tracks(order_id)            -> a second approval cannot queue a second track
#   lyrics(order_id) partial    -> at most one approved lyric per order
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS orders (
    id                  uuid PRIMARY KEY,
    user_id             uuid NOT NULL,
    occasion            text NOT NULL DEFAULT '',
    style               text NOT NULL DEFAULT '',
    tone                text NOT NULL DEFAULT '',
    duration_target_sec integer NOT NULL DEFAULT 120,
    story_raw           text NOT NULL DEFAULT '',
    story_summary       text,
    price               numeric(10, 2) NOT NULL DEFAULT 0,
    status              text NOT NULL DEFAULT 'DRAFT',
    payment_status      text NOT NULL DEFAULT 'PENDING',
    approved_lyric_id   uuid,
    song_title          text,
    style_prompt        text,
    cover_url           text,
    created_at          timestamptz NOT NULL DEFAULT now(),
    updated_at          timestamptz NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS orders_user_idx ON orders (user_id);
CREATE INDEX IF NOT EXISTS orders_status_idx ON orders (status, payment_status);

CREATE TABLE IF NOT EXISTS lyrics (
    id          uuid PRIMARY KEY,
    order_id    uuid NOT NULL REFERENCES orders (id),
    version     smallint NOT NULL CHECK (version IN (1, 2)),
    title       varchar(120) NOT NULL,
    body        text NOT NULL,
    prompt_json jsonb NOT NULL DEFAULT '{}'::jsonb,
    created_at  timestamptz NOT NULL DEFAULT now(),
    approved_at timestamptz,
    CONSTRAINT lyrics_order_version_uq UNIQUE (order_id, version),
    CONSTRAINT lyrics_id_order_uq UNIQUE (id, order_id)
);
CREATE UNIQUE INDEX IF NOT EXISTS lyrics_one_approved_per_order
    ON lyrics (order_id) WHERE approved_at IS NOT NULL;

DO $$
BEGIN
    ALTER TABLE orders
        ADD CONSTRAINT orders_approved_lyric_fk
        FOREIGN KEY (approved_lyric_id, id) REFERENCES lyrics (id, order_id);
EXCEPTION
    WHEN duplicate_object THEN NULL;
END $$;

CREATE TABLE IF NOT EXISTS tracks (
    id         uuid PRIMARY KEY,
    order_id   uuid NOT NULL REFERENCES orders (id),
    lyric_id   uuid NOT NULL REFERENCES lyrics (id),
    status     text NOT NULL DEFAULT 'queued',
    audio_url  text,
    created_at timestamptz NOT NULL DEFAULT now(),
    updated_at timestamptz NOT NULL DEFAULT now(),
    CONSTRAINT tracks_order_uq UNIQUE (order_id)
);

CREATE TABLE IF NOT EXISTS event_logs (
    id         bigserial PRIMARY KEY,
    order_id   uuid,
    type       text NOT NULL,
    payload    jsonb NOT NULL DEFAULT '{}'::jsonb,
    created_at timestamptz NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS event_logs_order_idx ON event_logs (order_id, created_at);

CREATE TABLE IF NOT EXISTS push_subscriptions (
    id         uuid PRIMARY KEY,
    user_id    uuid NOT NULL,
    endpoint   text NOT NULL,
    p256dh     text NOT NULL DEFAULT '',
    auth       text NOT NULL DEFAULT '',
    is_active  boolean NOT NULL DEFAULT true,
    created_at timestamptz NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS push_subscriptions_user_idx ON push_subscriptions (user_id) WHERE is_active;

CREATE TABLE IF NOT EXISTS notification_logs (
    id            bigserial PRIMARY KEY,
    user_id       uuid,
    order_id      uuid,
    title         text NOT NULL,
    body          text NOT NULL,
    status        text NOT NULL,
    error_message text,
    created_at    timestamptz NOT NULL DEFAULT now()
);
"""


async def _init_conn(conn: asyncpg.Connection):
    await conn.set_type_codec("json", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")
    await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


async def ensure_schema(pool: asyncpg.Pool) -> None:
    async with pool.acquire() as conn:
        await conn.execute(SCHEMA_SQL)
    logger.info("schema ensured")


async def get_pool() -> asyncpg.Pool:
    global _pool
    if _pool is None:
        _pool = await asyncpg.create_pool(
            dsn=settings.DATABASE_URL,
            min_size=settings.DB_POOL_MIN,
            max_size=settings.DB_POOL_MAX,
            init=_init_conn,
        )
        if settings.DB_ENSURE_SCHEMA:
            await ensure_schema(_pool)
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None

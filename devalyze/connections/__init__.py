from devalyze.connections.mongo import mongo_lifespan, init_mongo, close_mongo
from devalyze.connections.redis import redis_lifespan, get_redis

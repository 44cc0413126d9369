import os

# Tests run against the in-memory store with cheap password hashing.
os.environ.setdefault("USE_IN_MEMORY_BACKENDS", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

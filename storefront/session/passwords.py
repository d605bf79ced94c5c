"""
Hash bcrypt du mot de passe admin démo (variable ADMIN_DEMO_PASSWORD_HASH).

Usage:
    python -m storefront.session.passwords '<mot de passe>'
"""
import sys

import bcrypt


def hash_password(password: str, rounds: int = 12) -> str:
    # Génère un hash bcrypt avec salt auto
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """False si le mot de passe ne correspond pas; ValueError si hashed n'est pas un hash bcrypt."""
    return bcrypt.checkpw((password or "").encode("utf-8"), (hashed or "").encode("utf-8"))


if __name__ == "__main__":
    if len(sys.argv) != 2:
        sys.exit("Usage: python -m storefront.session.passwords '<mot de passe>'")
    print(f"ADMIN_DEMO_PASSWORD_HASH={hash_password(sys.argv[1])}")

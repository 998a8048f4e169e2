import asyncio

from passlib.context import CryptContext

from ..config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


async def hash_password(password: str) -> str:
    # bcrypt is CPU bound; keep it off the event loop
    return await asyncio.to_thread(pwd_context.hash, password)


async def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return await asyncio.to_thread(pwd_context.verify, plain_password, hashed_password)

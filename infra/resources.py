"""Infrastructure resources: database pool and completion provider client.

This module is part of the infra layer and must not import from application features.
"""
import ssl
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker


class DatabaseResource:
    """Database resource for dependency injection."""

    def __init__(self, database_url: str, ssl_insecure: bool = False):
        self.database_url = database_url
        self.ssl_insecure = ssl_insecure
        self.engine = None
        self.session_factory = None

    def _connect_args(self) -> Dict[str, Any]:
        if not self.ssl_insecure:
            return {}
        # TLS without certificate verification
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return {"ssl": context}

    async def init(self):
        """Initialize database connection."""
        self.engine = create_async_engine(
            self.database_url,
            echo=False,
            pool_pre_ping=True,
            pool_recycle=3600,
            connect_args=self._connect_args(),
        )
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        return self

    def get_session(self) -> AsyncSession:
        """Get database session (synchronous accessor)."""
        if self.session_factory is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self.session_factory()

    async def shutdown(self):
        """Shutdown database connection."""
        if self.engine:
            await self.engine.dispose()


class CompletionProviderResource:
    """OpenAI-compatible chat completion client for dependency injection.

    The client is created in ``init()`` rather than in the constructor so the
    container can be built without credentials (tests, tooling).
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 0,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.client: Optional[AsyncOpenAI] = None

    async def init(self):
        """Initialize the AsyncOpenAI client."""
        self.client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url or None,
            timeout=self.timeout,
            max_retries=self.max_retries,
        )
        return self

    async def complete(self, messages: List[Dict[str, str]]) -> Optional[str]:
        """Return the first choice's content, or None when the provider sent none."""
        if self.client is None:
            raise RuntimeError("Completion provider not initialized. Call init() first.")

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
        )
        if not response.choices:
            return None
        message = response.choices[0].message
        return message.content if message else None

    async def shutdown(self):
        """Close the underlying HTTP client."""
        if self.client:
            await self.client.close()
            self.client = None

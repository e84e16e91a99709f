#!/usr/bin/env python3
"""
Run the registry API with uvicorn.
"""
import uvicorn

from nest_registry.core.config import settings


def main():
    uvicorn.run("nest_registry.api.main:app", host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()

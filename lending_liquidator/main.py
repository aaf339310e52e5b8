#!/usr/bin/env python3
"""
Lending protocol liquidation bot
Entry point: python -m lending_liquidator.main run
"""
from .cli import main

if __name__ == "__main__":
    main()

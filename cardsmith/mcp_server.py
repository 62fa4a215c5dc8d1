"""
Card composition MCP server

Exposes template lookup, recommendations, knowledge base retrieval and card
composition as MCP tools over stdio.
"""

from typing import Optional

from mcp.server.fastmcp import FastMCP

from cardsmith.composer import CardComposer
from cardsmith.config import ComposerConfig, Settings
from cardsmith.embeddings import EmbeddingService
from cardsmith.tools.card_tools import register_card_tools
from cardsmith.tools.kb_tools import register_kb_tools
from cardsmith.utils.logging import setup_logging

logger = setup_logging()


def create_server(composer: Optional[CardComposer] = None) -> FastMCP:
    """
    Create and configure the MCP server

    Args:
        composer: Pre-built composer (default: wired from environment)

    Returns:
        Configured FastMCP server instance
    """
    if Settings.DEBUG:
        logger.info(Settings.display())

    if composer is None:
        composer = CardComposer.from_config(ComposerConfig.from_env())
    embeddings = EmbeddingService.from_config(composer.config)

    mcp = FastMCP(Settings.SERVER_NAME)

    logger.info("Registering tools...")
    register_card_tools(mcp, composer)
    register_kb_tools(mcp, composer.retrieval, embeddings)

    logger.info(f"{Settings.SERVER_NAME} ready (knowledge base: "
                f"{composer.config.kb_root or 'none'}, reference store: {composer.config.db_path or 'none'})")
    return mcp


def main():
    """Run the server over stdio."""
    server = create_server()
    server.run()


if __name__ == "__main__":
    main()

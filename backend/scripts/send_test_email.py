"""Mail transport smoke test.

Sends one plain-text message through Resend using the configured API key
and sender, so a deployment can check its mail credentials without placing
an order.

Usage:
    cd backend && python -m scripts.send_test_email you@example.com
"""

import logging

from app.core.email import MailDeliveryError, get_mailer

logger = logging.getLogger(__name__)

SUBJECT = "Mail transport test"
BODY = "If you get this, mail delivery is working!"


async def send_test_email(to_email: str) -> bool:
    """Send the test message.

    Args:
        to_email: Recipient address.

    Returns:
        True if Resend accepted the message.
    """
    try:
        await get_mailer().send_text(to_email=to_email, subject=SUBJECT, text=BODY)
    except MailDeliveryError:
        logger.error("Test email to %s failed", to_email)
        return False
    logger.info("Test email sent to %s", to_email)
    return True


async def main() -> None:
    """CLI entry point: send one test message."""
    import argparse
    import sys

    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("to_email", help="Recipient address")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ok = await send_test_email(args.to_email)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())

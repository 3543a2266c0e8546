#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import os
import sys
import json
import logging

from config import Config, setup_logging
from redemption import TrueMoneyVoucherRedemption
from app import render_outcome


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    config = Config.from_env()
    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)

    # Arguments win over environment variables
    mobile_number = argv[0] if len(argv) > 0 else os.getenv('MOBILE_NUMBER')
    campaign_link = argv[1] if len(argv) > 1 else os.getenv('CAMPAIGN_LINK')
    if not mobile_number or not campaign_link:
        print("usage: main.py <mobile_number> <campaign_link>", file=sys.stderr)
        return 2

    logger.info(f"Running redemption for {mobile_number}")
    redeemer = TrueMoneyVoucherRedemption(config)
    outcome = redeemer.redeem(mobile_number, campaign_link)

    body, _ = render_outcome(outcome)
    print(json.dumps(body, ensure_ascii=False, indent=2, default=str))
    return 0 if outcome.ok else 1


if __name__ == "__main__":
    sys.exit(main())

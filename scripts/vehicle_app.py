#!/usr/bin/env python3
"""Run the vehicle sample application.

Gateway settings come from the environment (CHANNEL_NAME, CHAINCODE_NAME,
MSP_ID, PEER_ENDPOINT, CRYPTO_PATH, ...). Pass ``--local`` to run against
an in-process network instead of a peer.
"""

from __future__ import annotations

import sys

from pyvledger.application import main

if __name__ == "__main__":
    sys.exit(main())

r"""CAN link smoke test script

Usage:
    python scripts/link_smoke_test.py --bitrate 2 --id 0x123 --high 0xAABBCCDD --low 0x11223344 --timeout 5
    python scripts/link_smoke_test.py --sim --id 0x123 --length 4 --high 0x01020304
    python scripts/link_smoke_test.py --list-bitrates

The script will:
- start the link supervisor and wait for the adapter to come up
- write a single frame through the command bridge
- listen for frames for the specified timeout and print them

Notes:
- Without --sim, requires PEAK PCAN-Basic drivers on the machine running the script.
"""
from __future__ import annotations

import argparse
import logging
import sys
import time

import pathlib

# Ensure the repository root is on sys.path so `canlink` imports resolve when running
# the script from a checkout.
ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from canlink.config import ConfigManager, configure_logging
from canlink.exceptions import CanLinkException, InvalidBitRateIndex
from canlink.models.bitrate import coerce_bitrate_index, format_bitrate_table
from canlink.services.link_supervisor import LinkState
from canlink.services.service_container import ServiceContainer

logger = logging.getLogger("link_smoke_test")


def parse_args():
    p = argparse.ArgumentParser(description="CAN link smoke test: bring the adapter up, send a frame, listen")
    p.add_argument("--config", default=None, help="Optional JSON config file")
    p.add_argument("--channel", default=None, help="PCAN channel name, e.g. PCAN_USBBUS1")
    p.add_argument("--bitrate", default=None, help="Bit-rate index 0-13 (see --list-bitrates)")
    p.add_argument("--sim", action="store_true", help="Use the in-memory simulated driver")
    p.add_argument("--id", default="0x100", help="CAN ID to send (hex) e.g. 0x100")
    p.add_argument("--length", type=int, default=8, help="Frame length 0-8")
    p.add_argument("--high", default="0", help="Data bytes 0-3 as a 32-bit word")
    p.add_argument("--low", default="0", help="Data bytes 4-7 as a 32-bit word")
    p.add_argument("--connect-timeout", type=float, default=5.0, help="Seconds to wait for the link")
    p.add_argument("--timeout", type=float, default=5.0, help="Time in seconds to listen for frames")
    p.add_argument("--list-bitrates", action="store_true", help="Print the bit-rate table and exit")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING...")
    return p.parse_args()


def main():
    args = parse_args()
    config = ConfigManager(args.config)
    configure_logging(args.log_level or config.app_settings.log_level)

    if args.channel:
        config.can_settings.channel = args.channel
    if args.bitrate is not None:
        try:
            config.can_settings.bitrate_index = coerce_bitrate_index(args.bitrate)
        except InvalidBitRateIndex as e:
            print(e)
            sys.exit(2)
    if args.sim:
        config.can_settings.adapter_type = 'sim'

    if args.list_bitrates:
        print(format_bitrate_table(config.can_settings.bitrate_index))
        return

    container = ServiceContainer()
    try:
        container.initialize_services(config)
    except CanLinkException as e:
        print("Failed to set up the link:", e)
        sys.exit(2)

    supervisor = container.get_link_supervisor()
    bridge = container.get_command_bridge()
    supervisor.add_listener(lambda state: print(f"Link state: {state.value}"))
    container.start()

    try:
        print(f"Waiting for {supervisor.gateway.channel} at {supervisor.bitrate.label}...")
        if not supervisor.wait_for_state(LinkState.CONNECTED, timeout=args.connect_timeout):
            print("Adapter did not come up; check the dongle and PCAN drivers")
            sys.exit(3)

        can_id = int(args.id, 0)
        ok = bridge.write(can_id, args.length, int(args.high, 0), int(args.low, 0))
        print(f"Write id=0x{can_id:x}: {'ok' if ok else 'failed'}")

        print(f"Listening for frames for {args.timeout} seconds...")
        deadline = time.time() + args.timeout
        seen = 0
        while time.time() < deadline:
            frame, _status = bridge.read()
            if frame is None:
                time.sleep(0.01)
                continue
            seen += 1
            print(f"Received frame #{seen}: id=0x{frame.can_id:x} len={frame.length} data={frame.data_hex}")

        if seen == 0:
            print("No frames received within timeout")
        else:
            print(f"Received {seen} frame(s)")
    finally:
        container.clear()


if __name__ == "__main__":
    main()

# Example: pyOpenDTU Usage Demo
# ------------------------------
# This script shows how to read an OpenDTU device with the pyOpenDTU library.
#
# Usage:
#   - Run once to create the settings file, then edit it with your device URLs
#     and credentials. Or use a .env file with the following variables:
#       DTU_CONFIG_PATH, DTU_LOCAL_PATH, DTU_CACHE_PATH, DTU_TIMEOUT
#   - Run: python example.py
#
# For more info, see: https://github.com/tbnobody/OpenDTU

import os

import dotenv

import pyopendtu
from pyopendtu.models import InverterStatus, power_draw_value

# Load environment variables from .env file if present
dotenv.load_dotenv()

# Enable debug logging for more verbose output (optional for learning)
# pyopendtu.set_debug(True)

timeout = float(os.getenv('DTU_TIMEOUT', '10'))

# Always wait for fresh data in this demo (no optimistic cache display)
dtu = pyopendtu.OpenDTU(timeout=timeout, optimistic=False)
settings = dtu.settings()
print(f"Settings file: {dtu.store.path}")
if settings.is_placeholder():
    print("Edit the settings file first - it still contains 'change-me' values.")

# --- Fetch data (falls back to the cache if the device is offline) ---
result = dtu.refresh(settings)
print(f"Result: {result.state} (from cache: {result.from_cache})\n")

if result.state != pyopendtu.HARD_FAIL:
    status = InverterStatus.from_payload(result.dtu)
    print("Inverter: %s (%s)" % (status.name, status.serial))
    print("Producing: %s - Reachable: %s" % (status.producing, status.reachable))
    print("Power: %0.2f W" % status.power)
    print("Yield Day: %0.2f kWh" % (status.yield_day / 1000.0))
    print("Yield Total: %0.2f kWh" % status.yield_total)
    for channel in status.dc:
        print(f"  {channel.name}: {channel.power:.2f} W")
    if result.power_draw is not None:
        print("Power Draw: %0.2f W" % power_draw_value(settings.powermeter, result.power_draw))
else:
    print(result.message)

# --- Widget ---
text, _ = dtu.widget(size="medium")
print("")
print(text)
dtu.close()

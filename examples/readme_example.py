import asyncio

import impscope.util
from impscope.session import ImpedanceSession, SourceMode
from impscope.sync import InMemoryRecordStore, RemoteSyncCache
from impscope.types import Bank, RecordKind

DEVICE_ID = "AB12CD34"

impscope.util.start_log(log_to_file=False, log_to_stdout=True)

# readings as delivered by the transport when a session completes
readings = {ch: 5.0 for ch in range(1, 33)}
readings.update({1: 1.8, 2: 1.2, 16: 9.4, 17: 1.0, 32: 6.0})


async def main():
    session = ImpedanceSession(RemoteSyncCache(InMemoryRecordStore()))
    session.set_device_id(DEVICE_ID)
    session.begin_measurement()
    session.complete_measurement(readings)

    # two picks per bank off the chart: first is "min", second is "max"
    session.select_sample(Bank.A, 1)
    session.select_sample(Bank.A, 16)
    session.select_sample(Bank.B, 17)
    session.select_sample(Bank.B, 32)
    await session.save_calibration()

    results = await session.diagnose(SourceMode.RECORD)
    for res in results[:3]:
        print(res.channel, res.display_text)  # 2 SHORT (1.6)
    await session.save_measurement(results)

    print(await session.cache.find(RecordKind.MEASUREMENT, DEVICE_ID))
    session.close()


asyncio.run(main())
impscope.util.shutdown_log()

import argparse, os, signal, time
from utils import ensure_dirs, setup_logger
from settings import load_settings
from collectors.system_collector import MetricSampler
from collectors.process_collector import ProcessRanker
from detectors.coordinator import MonitorLoop, SpikeCoordinator
from alerting.event_log import EventLog, default_log_paths
from alerting.summary_worker import SummaryWorker
from genai import SummaryGenerator


def build_event_log(settings, log):
    if settings.log_dir:
        try:
            ensure_dirs(os.path.expanduser(settings.log_dir))
        except OSError as e:
            log.warning(f"Cannot create log_dir {settings.log_dir}: {e}")
    return EventLog(
        default_log_paths(settings.log_file_name, settings.log_dir),
        retention_days=settings.log_retention_days,
        spike_seconds=settings.spike_seconds,
        max_cached_lines=settings.max_cached_lines,
        logger=log,
    )


def main():
    ap = argparse.ArgumentParser(description="CPU/RAM spike monitor")
    ap.add_argument("--config", default="config.yaml")
    ap.add_argument("--log-level", default=None, help="override log_level from the config file")
    ap.add_argument("--prune", action="store_true", help="prune old log sections and exit")
    args = ap.parse_args()

    log = setup_logger(args.log_level or "INFO")
    settings = load_settings(args.config, log)
    log = setup_logger(args.log_level or settings.log_level)

    if args.prune:
        with build_event_log(settings, log) as event_log:
            removed = event_log.prune_old_entries()
            log.info(f"Removed {removed} lines from {event_log.path}")
        return

    with MetricSampler(log) as sampler, build_event_log(settings, log) as event_log:
        ranker = ProcessRanker(settings.tick_interval, logger=log)

        worker = None
        if settings.summary.enabled:
            generator = SummaryGenerator(settings.summary.model, settings.summary.api_url,
                                         settings.summary.api_key_env, settings.spike_seconds, log)
            if not generator.ready:
                log.info(f"{settings.summary.api_key_env} not set; spike summaries disabled")
            worker = SummaryWorker(generator, event_log, settings.summary.timeout_seconds, logger=log)
            worker.start()

        coordinator = SpikeCoordinator(settings, sampler, ranker, event_log, worker, logger=log)

        if hasattr(signal, "SIGHUP"):
            def reload(signum, frame):
                try:
                    coordinator.apply_settings(load_settings(args.config, log))
                except (OSError, ValueError) as e:
                    log.error(f"Config reload failed: {e}")
            signal.signal(signal.SIGHUP, reload)

        loop = MonitorLoop(coordinator, log)
        loop.start()

        log.info("Spike monitor running. Press Ctrl+C to stop.")
        try:
            while loop.is_alive():
                time.sleep(1)
        except KeyboardInterrupt:
            log.info("Stopping...")
        finally:
            loop.stop()
            loop.join(timeout=5)
            if worker:
                worker.stop()
                worker.join(timeout=5)
            log.info(f"Stopped after {coordinator.spike_count} spikes.")


if __name__ == "__main__":
    main()

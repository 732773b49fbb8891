from cost_notifier.cli import run

run()

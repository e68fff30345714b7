# Progress reporting for long running builds. The core never prints; callers
# pass in whichever reporter suits them.

import logging

logger = logging.getLogger(__name__)


class Reporter:

    def report(self, message, *args):
        raise NotImplementedError


class NullReporter(Reporter):

    def report(self, message, *args):
        pass


class LoggingReporter(Reporter):

    def __init__(self, log=None):
        self.log = log or logger

    def report(self, message, *args):
        self.log.info(message, *args)


class ConsoleReporter(Reporter):

    def __init__(self, stream=None):
        self.stream = stream

    def report(self, message, *args):
        print(message % args if args else message, file=self.stream)

# -*- coding: utf-8 -*-

from tugboat.tools.reporter import StatusReporter

__all__ = ['reporter', 'StatusReporter']

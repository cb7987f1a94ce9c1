from .stamp import *

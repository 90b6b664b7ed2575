""" Array-RQMC simulation of Markov chains with multivariate sorts of the chain states """

from .exceptions import ArrayRQMCError, ConfigurationError, BitWidthError, ChainStoppedError
from .hilbert_curve import HilbertCurveMap
from .multidim_sort import (MultiDimSort, OneDimSort, SplitSort, BatchSort, BatchSortPow2, HilbertCurveSort,
                            HilbertCurveBatchSort)
from .markov_chains import MultiDimComparable, MarkovChain, MarkovChainComparable, MarkovChainDouble
from .array_rqmc import partition_running, ArrayOfComparableChains, ArrayOfDoubleChains
from .point_sets import (PointSet, ContainerPointSet, SobolPointSet, KorobovLattice, IIDPointSet,
                         SortedAndCutPointSet, PointSetIterator)
from .randomizations import PointSetRandomization, RandomShift, DigitalShift, LinearMatrixScramble
from .random_streams import RandomStream, NumpyStream
from .statistics import Tally

__version__ = '0.1.0'

from .input_data_model import (
    SolcInput,
    SolcInputLanguageEnum,
    SolcInputOptimizerSettings,
    SolcInputSettings,
    SolcInputSource,
    SolcOutputSelectionEnum,
)
from .output_data_model import (
    SolcOutput,
    SolcOutputContractInfo,
    SolcOutputError,
    SolcOutputErrorSeverityEnum,
    SolcOutputEvmBytecodeData,
    SolcOutputEvmData,
)
from .solc_runner import CompilerAbc, SolcFrontend

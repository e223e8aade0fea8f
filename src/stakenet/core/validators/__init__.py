from stakenet.core.validators.lifecycle import Validator, ValidatorLifecycle

__all__ = ["Validator", "ValidatorLifecycle"]

# Copyright 2020 The GPflow Contributors. All Rights Reserved.
# Copyright 2023 The fitcflow Contributors. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from typing import Any, Callable, Optional, Tuple, Type, TypeVar, Union

import multipledispatch
from multipledispatch.dispatcher import str_signature, variadic_signature_matches
from multipledispatch.variadic import isvariadic

from ..errors import ConfigurationError

__all__ = ["Dispatcher"]


AnyCallable = Callable[..., Any]
_C = TypeVar("_C", bound=AnyCallable)
Types = Union[Type[Any], Tuple[Type[Any], ...]]


class Dispatcher(multipledispatch.Dispatcher):
    """
    Dispatcher used for the covariance blocks. A call with argument types
    that have no registered implementation raises :class:`ConfigurationError`
    naming the dispatcher and the offending signature.
    """

    def register(self, *types: Types, **kwargs: Any) -> Callable[[_C], _C]:
        decorator: Callable[[_C], _C] = super().register(*types, **kwargs)
        return decorator

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        implementation = self.dispatch(*map(type, args))
        if implementation is None:
            raise ConfigurationError(
                f"Could not find signature for {self.name}: <{str_signature(map(type, args))}>"
            )
        return implementation(*args, **kwargs)

    def _matches(self, signature: Tuple[type, ...], types: Tuple[Types, ...]) -> bool:
        if signature and isvariadic(signature[-1]):
            return bool(variadic_signature_matches(types, signature))
        return len(signature) == len(types) and all(
            issubclass(t, s) for t, s in zip(types, signature)  # type: ignore[arg-type]
        )

    def dispatch(self, *types: Types) -> Optional[AnyCallable]:
        """
        The implementation registered for exactly `types` or, failing that,
        for the most specific signature the types are subclasses of. None
        when nothing matches.
        """
        if types in self.funcs:
            exact: AnyCallable = self.funcs[types]
            return exact
        # `ordering` lists the signatures from most to least specific.
        for signature in self.ordering:
            if self._matches(signature, types):
                found: AnyCallable = self.funcs[signature]
                return found
        return None

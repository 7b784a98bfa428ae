class ProblemParameters:
    """
    Named, updatable parameters of a system, a cost function, or a multiple
    shooting discretization. Each parameter is stored as an attribute. A
    validation hook runs after every `update`, so that derived quantities
    (matrix shapes, dimensions, converted types) stay consistent when a
    parameter is changed between iterations.
    """
    def __init__(self, required=(), update_fun=None, **params):
        """
        Parameters
        ----------
        required : iterable of str, default=()
            Names of parameters which must not be None after an update.
        update_fun : callable, optional
            Hook with call signature `update_fun(obj, **params)`, executed at
            the end of every `update`. `obj` is this instance, already holding
            the new values, and `params` are only the parameters which changed.
            The hook may overwrite attributes with validated versions.
        **params : dict
            Initial parameters, set with `update`.
        """
        if update_fun is not None and not callable(update_fun):
            raise TypeError("update_fun must be callable")
        self._update_fun = update_fun
        self._names = []
        self.required = frozenset(required)

        if params:
            self.update(**params)

    def update(self, check_required=True, **params):
        """
        Set one or more parameters and run the validation hook on them.

        Parameters
        ----------
        check_required : bool, default=True
            If True, check that no required parameter is None after setting
            the new values and before validating them.
        **params : dict
            Parameters to set, as keyword arguments.

        Raises
        ------
        RuntimeError
            If `check_required` is True and a required parameter is None.
        """
        for name, value in params.items():
            if name not in self._names:
                self._names.append(name)
            setattr(self, name, value)

        if check_required:
            missing = [p for p in sorted(self.required)
                       if getattr(self, p, None) is None]
            if missing:
                raise RuntimeError(f"{missing[0]} is required but has not "
                                   f"been set")

        if self._update_fun is not None:
            self._update_fun(self, **params)

    def as_dict(self):
        """
        Returns
        -------
        parameter_dict : dict
            Current (validated) value of every parameter set with `update`.
        """
        return {name: getattr(self, name) for name in self._names}

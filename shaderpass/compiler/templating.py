"""
Jinja2 templating for the scaffold that wraps the user code.

Templates are named ``'<context>.<filename>'``, e.g. ``'shaderpass.scaffold.glsl'``.
Applications can register their own context to provide a custom scaffold,
which is passed to ``assemble()`` via its ``template`` argument.

In templates, blocks use ``{$ ... $}`` (not ``{% ... %}``), and lines
starting with ``$$`` are statements. Using an undefined variable is an error.
"""

import jinja2


glsl_loaders = jinja2.PrefixLoader({}, delimiter=".")

jinja_env = jinja2.Environment(
    block_start_string="{$",
    block_end_string="$}",
    variable_start_string="{{",
    variable_end_string="}}",
    line_statement_prefix="$$",
    undefined=jinja2.StrictUndefined,
    keep_trailing_newline=True,
    loader=glsl_loaders,
)


def _to_jinja_loader(loader):
    if isinstance(loader, jinja2.BaseLoader):
        return loader
    elif isinstance(loader, dict):
        return jinja2.DictLoader(loader)
    elif callable(loader):
        return jinja2.FunctionLoader(loader)
    raise TypeError(
        f"A glsl loader must be a jinja2.BaseLoader, dict, or function, not {loader!r}"
    )


def register_glsl_loader(context, loader):
    """Register a loader for glsl templates under the given context name.

    The loader can be a jinja2 loader, a dict that maps filenames to
    source, or a function that takes a filename and returns the source (or
    None if there is no such template). Each context can be registered once.
    """
    if not isinstance(context, str) or not context or "." in context:
        raise TypeError(
            f"Invalid glsl loader context {context!r}, use a name without dots."
        )
    if context in glsl_loaders.mapping:
        raise RuntimeError(f"A glsl loader is already registered for '{context}'.")
    glsl_loaders.mapping[context] = _to_jinja_loader(loader)


register_glsl_loader("shaderpass", jinja2.PackageLoader("shaderpass.glsl", "."))


def render_template(name, **kwargs):
    """Render the named template. Errors are raised as ValueError."""
    try:
        template = jinja_env.get_template(name)
    except jinja2.TemplateNotFound as err:
        raise ValueError(f"Cannot find shader template: {err.name}") from None
    try:
        return template.render(**kwargs)
    except jinja2.UndefinedError as err:
        raise ValueError(f"Cannot compose shader: {err.args[0]}") from None

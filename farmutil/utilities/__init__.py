"""
The collection of utilities shipped with farmutil.

--------------------------------------------------------------------------

Each utility is a single Python file which is loaded (by path, see
`farmutil.plugins`) by the `run` command once the worker pool has been
assembled. A utility file MUST export two functions:

- getDescription : takes no arguments and returns a one line description
                   of the utility (logged when the utility is started).

- createInstance : takes the `UtilityServices` of this farmutil process
                   (the started scheduler, the file resolver, the class
                   registry, the configuration and the node name) and
                   returns a `farmutil.plugins.Utility` whose `run` method
                   is then called with the remaining command line
                   arguments.

--------------------------------------------------------------------------

Utilities are found by name along the search path (see the `-a` option of
the `run` command). For each entry of the search path both `<entry>/<name>.py`
and `<entry>/utilities/<name>.py` are tried, so that this directory is found
through the installed farmutil package.

--------------------------------------------------------------------------

NOTE: any `Utility` subclass defined by a utility file becomes available
      (by class name) through the class registry once the file has been
      loaded.
"""
